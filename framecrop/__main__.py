import sys

from framecrop.main import run

sys.exit(run())
