"""
Entry point for running Lexis as a module.

Usage:
    python -m lexis.review review
    python -m lexis.review stats
    python -m lexis.review --help
"""
from .cli import main

if __name__ == "__main__":
    main()
