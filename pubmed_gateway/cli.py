"""
Command line access to the PubMed gateways.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from .core.documents import Document
from .core.gateway import Gateway
from .core.gateways import pubmed_links, pubmed_record, pubmed_search, pubmed_summary
from .utils.config import get_settings
from .utils.errors import GatewayError

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog="pubmed-gateway",
        description="Query PubMed through the NCBI E-utilities API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s search "cancer" --start 0 --end 20
  %(prog)s summary 31452104 31437182
  %(prog)s record 31452104
  %(prog)s links 31452104
  %(prog)s --test search "machine learning medicine"
        """
    )

    parser.add_argument(
        "--test",
        action="store_true",
        help="Do not call NCBI, print the call that would be made"
    )
    parser.add_argument(
        "--url-only",
        action="store_true",
        help="Print the request URL and exit"
    )
    parser.add_argument(
        "--email", "-e",
        type=str,
        help="Contact email sent to NCBI in the User-Agent header"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search PubMed and list matching PMIDs")
    search.add_argument("query", help="PubMed search query (advanced search syntax)")
    search.add_argument("--start", type=int, default=0, help="Index of the first result (default: 0)")
    search.add_argument("--end", type=int, default=20, help="Index after the last result (default: 20)")

    summary = subparsers.add_parser("summary", help="Show document summaries for PMIDs")
    summary.add_argument("ids", nargs="+", help="PubMed identifiers")

    record = subparsers.add_parser("record", help="Show abstracts from full PubMed records")
    record.add_argument("ids", nargs="+", help="PubMed identifiers")

    links = subparsers.add_parser("links", help="Show linked articles for one PMID")
    links.add_argument("id", help="PubMed identifier")

    return parser.parse_args(argv)


def build_gateway(args: argparse.Namespace) -> Gateway:
    """Create the gateway matching the chosen subcommand"""
    settings = get_settings()
    if args.email:
        settings = replace(settings, email=args.email)
    test = True if args.test else None

    if args.command == "search":
        return pubmed_search(args.query, args.start, args.end, test=test, settings=settings)
    if args.command == "summary":
        return pubmed_summary(args.ids, test=test, settings=settings)
    if args.command == "record":
        return pubmed_record(args.ids, test=test, settings=settings)
    return pubmed_links(args.id, test=test, settings=settings)


def render(command: str, document: Document) -> List[str]:
    """Format a parsed document as output lines"""
    if command == "search":
        ids = document.ids()
        return [f"{document.count()} results, showing {len(ids)}"] + ids

    if command == "summary":
        lines = []
        for paper in document.summaries():
            authors = ", ".join(paper.authors[:3]) + (" et al." if len(paper.authors) > 3 else "")
            lines.append(f"{paper.pmid}\t{paper.year or '----'}\t{paper.title or ''}\t{authors}")
        return lines

    if command == "record":
        lines = []
        for paper in document.papers():
            lines.append(f"PMID {paper.pmid}: {paper.title or ''}")
            lines.append(paper.abstract or "(no abstract)")
            lines.append("")
        return lines

    lines = []
    for linkname, ids in document.links().items():
        lines.append(f"{linkname} ({len(ids)}): {', '.join(ids)}")
    return lines


async def run_command(args: argparse.Namespace) -> List[str]:
    gateway = build_gateway(args)
    if args.url_only:
        return [gateway.build_url()]

    def handler(document):
        if isinstance(document, str):
            return [document]
        return render(args.command, document)

    return await gateway.get(handler)


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function"""
    args = parse_arguments(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )

    try:
        lines = asyncio.run(run_command(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except GatewayError as e:
        logger.error(f"❌ {e}")
        return 1

    for line in lines:
        print(line)
    return 0


def run():
    sys.exit(main())
