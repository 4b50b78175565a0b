"""
CLI entry point for the tower-atlas command.
"""
import sys

from tower_atlas.runner import main

# Re-export main for the console_scripts entry point
__all__ = ['main']

if __name__ == '__main__':
    sys.exit(main())
