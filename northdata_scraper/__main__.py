import sys

from northdata_scraper.main import main

sys.exit(main())
