#!/usr/bin/env python3
"""
cartllm CLI - find the checkout total of a page

Usage:
    cartllm extract <page.html | https://...> [--domain example.com] [--no-model]
    cartllm cache show <domain>
    cartllm cache clear <domain>
"""

import sys
import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .config import config
from .currency import is_checkout_page
from .document import HtmlDocument, PlaywrightDocument
from .llm_factory import setup_llm
from .orchestrator import CartTotalExtractor
from .selector_cache import SelectorCache, cache_key
from .storage import JsonFileStore

logger = logging.getLogger(__name__)


def _configure_logging(args):
    level = "DEBUG" if getattr(args, "verbose", False) else config.log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )


def _is_url(target: str) -> bool:
    return urlparse(target).scheme in ("http", "https")


def _domain_for(args) -> str:
    if args.domain:
        return args.domain
    source = args.url or (args.target if _is_url(args.target) else "")
    return urlparse(source).hostname or "localhost"


def _store(args) -> JsonFileStore:
    return JsonFileStore(Path(args.store)) if args.store else JsonFileStore()


async def _extract(args) -> Dict[str, Any]:
    model = None if args.no_model else setup_llm()
    extractor = CartTotalExtractor(store=_store(args), model=model)
    domain = _domain_for(args)

    if _is_url(args.target):
        from playwright.async_api import async_playwright

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=config.headless)
            try:
                page = await browser.new_page()
                await page.goto(args.target, wait_until="networkidle")
                document = PlaywrightDocument(page)
                report = await extractor.extract(document, domain)
                info = await document.page_info()
            finally:
                await browser.close()
    else:
        document = HtmlDocument.from_file(args.target, url=args.url or "")
        report = await extractor.extract(document, domain)
        info = await document.page_info()

    output = report.to_dict()
    output["is_checkout_page"] = is_checkout_page(info.get("url", ""), info.get("title", ""))
    return output


def cmd_extract(args) -> int:
    if not _is_url(args.target) and not Path(args.target).exists():
        logger.error(f"File not found: {args.target}")
        return 1
    output = asyncio.run(_extract(args))
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0 if output["amount"] is not None else 2


async def _cache(args) -> Optional[Dict[str, Any]]:
    store = _store(args)
    if args.action == "clear":
        await SelectorCache(store).clear(args.domain)
        return None
    key = cache_key(args.domain)
    return (await store.get([key])).get(key)


def cmd_cache(args) -> int:
    entry = asyncio.run(_cache(args))
    if args.action == "show":
        if entry is None:
            print(f"No cached selectors for {args.domain}")
            return 1
        print(json.dumps(entry, indent=2, ensure_ascii=False))
    else:
        print(f"Cleared cached selectors for {args.domain}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cartllm",
        description="cartllm - find the final checkout total on a page",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--store', help='Path of the JSON selector store')
    parser.add_argument('--verbose', action='store_true', help='Verbose output')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    extract_parser = subparsers.add_parser('extract', help='Extract the cart total from a page')
    extract_parser.add_argument('target', help='HTML file or http(s) URL')
    extract_parser.add_argument('--domain', help='Cache key domain (default: URL host)')
    extract_parser.add_argument('--url', help='Original URL of an HTML file')
    extract_parser.add_argument('--no-model', action='store_true', help='Cache and scan only')
    extract_parser.set_defaults(func=cmd_extract)

    cache_parser = subparsers.add_parser('cache', help='Inspect the selector cache')
    cache_parser.add_argument('action', choices=['show', 'clear'])
    cache_parser.add_argument('domain')
    cache_parser.set_defaults(func=cmd_cache)

    return parser


def main(argv=None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    _configure_logging(args)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
