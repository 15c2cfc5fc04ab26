import sys

from ruletrader.cli.cli import main

sys.exit(main())
