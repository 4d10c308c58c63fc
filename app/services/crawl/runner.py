from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from app.config import configure_logging
from app.errors import ScrapeError, StoreError

from .pipeline import ingest_cosplay, ingest_video
from .spiders.cosplay_spider import CosplayPageSpider
from .spiders.video_spider import VideoPageSpider

logger = logging.getLogger(__name__)

_SPIDERS = {
    "parse-video": VideoPageSpider,
    "parse-cosplay": CosplayPageSpider,
}


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Run scraper tasks by hand")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="cmd", required=True)

    video = sub.add_parser("video", help="Scrape a video page and store it")
    video.add_argument("url", help="Video page URL")

    cosplay = sub.add_parser("cosplay", help="Scrape a cosplay gallery page and store it")
    cosplay.add_argument("url", help="Gallery page URL")

    for cmd in _SPIDERS:
        p = sub.add_parser(cmd, help="Extract a record and print it as JSON (nothing is stored)")
        src = p.add_mutually_exclusive_group(required=True)
        src.add_argument("--url", help="Page URL to fetch")
        src.add_argument("--file", help="Local HTML file path")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        if args.cmd == "video":
            record = ingest_video(args.url)
            print(f"Stored video: {record.slug}")
            return 0
        if args.cmd == "cosplay":
            record = ingest_cosplay(args.url)
            print(f"Stored cosplay: {record.slug} ({len(record.gallery)} images)")
            return 0

        spider = _SPIDERS[args.cmd]()
        if args.url:
            record = spider.fetch_from_url(args.url)
        else:
            with open(args.file, "r", encoding="utf-8") as f:
                record = spider.parse_html(f.read(), source_url=args.file)
        print(json.dumps(record.to_dict(), ensure_ascii=False, indent=2))
        return 0
    except (ScrapeError, StoreError) as exc:
        logger.error("%s failed: %s", args.cmd, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
