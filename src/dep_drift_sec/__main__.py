import sys

from dep_drift_sec.cli import main

sys.exit(main())
