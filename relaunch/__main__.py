import sys

from relaunch.cli import main

sys.exit(main())
