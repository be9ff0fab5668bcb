"""
Allow running bugreport as a module:

    python -m bugreport report --results-dir <dir> [options]

Delegates to bugreport.cli:main().
"""
import sys
from .cli import main

sys.exit(main())
