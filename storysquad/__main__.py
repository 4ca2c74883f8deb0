import sys

from storysquad.cli import main

sys.exit(main())
