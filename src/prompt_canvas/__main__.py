"""
Entry point for running Prompt Canvas as a module.

Usage:
    python -m prompt_canvas run workflow.json
"""

import sys

from prompt_canvas.main import main

if __name__ == "__main__":
    sys.exit(main())
