import sys

from geosentinel.cli import main

sys.exit(main())
