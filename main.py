"""
Booking desk entry point.

Usage:
    python main.py slots 2026-11-03
    python main.py book --name "Ana Costa" --type adult --phone 0412345678 \\
        --start 2026-11-03T10:00:00+11:00
    python main.py --help
"""

from courtbook.cli import main

if __name__ == "__main__":
    main()
