import sys

from pairwise_elicit.cli import main

sys.exit(main())
