import sys

from stl_volume.cli import main

sys.exit(main())
