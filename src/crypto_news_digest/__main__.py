import sys

from crypto_news_digest.cli import main

sys.exit(main())
