import sys

from src.project_rename.cli import main

sys.exit(main())
