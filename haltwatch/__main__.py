import sys

from haltwatch.main import main

sys.exit(main())
