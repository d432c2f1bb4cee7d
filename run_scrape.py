#!/usr/bin/env python3
"""
Entry point for the Tapatalk archiver.

Runs the full three-pass scrape (forums, topics, members) with the
default configuration, creating the database first if it is missing.

Usage:
    python run_scrape.py

For single passes or a different board, use the CLI instead:
    tapatalk-archiver forums --start 1 --end 10
    tapatalk-archiver --db other.sqlite topic 1234
"""

import logging
import sys
from pathlib import Path

# Add src to path to import the package
# This allows running the script from repository root
sys.path.insert(0, str(Path(__file__).parent / "src"))

from tapatalk_archiver.scraper import ForumArchiver


def main():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    with ForumArchiver() as archiver:
        archiver.run()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n⚠️  Scraping interrupted by user")
        print("   Rows already committed are kept; rerunning walks the full range again.")
        sys.exit(0)
