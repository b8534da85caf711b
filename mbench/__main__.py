"""Run the mbench command line: python -m mbench"""

import sys

from mbench.cli import main

sys.exit(main())
