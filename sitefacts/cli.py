import argparse
import asyncio
import json
import logging
import sys
from typing import List

from sitefacts.config import Settings, setup_logging
from sitefacts.errors import SiteFactsError
from sitefacts.extractor import format_fields_as_context
from sitefacts.service import ExtractionService

logger = logging.getLogger(__name__)


def read_urls(args) -> List[str]:
    urls = list(args.urls or [])
    if args.file:
        with open(args.file, "r") as file:
            urls.extend(line.strip() for line in file.readlines())
    return [u for u in urls if u]


async def extract_urls(service: ExtractionService, urls: List[str], mode: str) -> int:
    """Process URLs one at a time, printing one JSON document per URL."""
    failed = 0
    for url in urls:
        try:
            result = await service.extract(url, mode)
            output = result.to_dict()
            output["context"] = format_fields_as_context(result.extracted_fields)
        except SiteFactsError as e:
            logger.error(f"Failed to process {url}: {str(e)}")
            output = {"url": url, "error": e.to_payload()}
            failed += 1
        print(json.dumps(output, indent=2))
        logger.info(f"Completed processing {url}")
    logger.info(f"Batch completed: {len(urls) - failed} successful, {failed} failed")
    return failed


async def run_query(service: ExtractionService, question: str, context: str, mode: str) -> int:
    try:
        response = await service.query(question, context, mode)
    except SiteFactsError as e:
        print(json.dumps(e.to_payload(), indent=2))
        return 1
    print(json.dumps(response.to_dict(), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sitefacts", description="Extract business facts from company websites")
    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", help="Scrape websites and extract mission, product and value proposition")
    extract.add_argument("urls", nargs="*", help="Website URLs")
    extract.add_argument("--file", type=str, help="File with one URL per line")
    extract.add_argument("--mode", choices=["strict", "open"], default="strict")

    query = sub.add_parser("query", help="Ask a question about extracted information")
    query.add_argument("--question", required=True)
    source = query.add_mutually_exclusive_group(required=True)
    source.add_argument("--context", type=str, help="Context text")
    source.add_argument("--context-file", type=str, help="File holding the context text")
    query.add_argument("--mode", choices=["strict", "open"], default="strict")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    if args.command == "serve":
        import uvicorn
        from sitefacts.api import create_app

        uvicorn.run(create_app(settings=settings), host=args.host, port=args.port, log_level=settings.log_level.lower())
        return

    service = ExtractionService(settings)
    try:
        if args.command == "extract":
            urls = read_urls(args)
            if not urls:
                logger.error("No URLs provided")
                sys.exit(2)
            logger.info(f"Processing {len(urls)} URLs in {args.mode} mode")
            failed = asyncio.run(extract_urls(service, urls, args.mode))
            sys.exit(1 if failed else 0)

        if args.context_file:
            with open(args.context_file, "r") as file:
                context = file.read()
        else:
            context = args.context
        sys.exit(asyncio.run(run_query(service, args.question, context, args.mode)))
    except OSError as e:
        logger.error(f"Error in main execution: {str(e)}")
        sys.exit(1)


if __name__ == '__main__':
    main()
