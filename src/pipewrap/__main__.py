import sys

from pipewrap.cli import main

sys.exit(main())
