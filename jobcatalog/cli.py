"""Command line entry point.

Usage:
    jobcatalog init-db
    jobcatalog crawl "frontend developer" --location "Sydney NSW" --max-pages 3
    jobcatalog parse-resume resume.txt
    jobcatalog match resume.txt --limit 20
    jobcatalog purge --days 21
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from jobcatalog.config import settings
from jobcatalog.database import init_db, session_scope
from jobcatalog.errors import JobCatalogError
from jobcatalog.log import configure_logging
from jobcatalog.schemas.job import JobFilter, JobOut
from jobcatalog.services.batch_matcher import BatchMatchOrchestrator
from jobcatalog.services.crawl_tasks import CrawlTaskManager
from jobcatalog.services.job_store import JobStore
from jobcatalog.services.matcher import MatchRanker
from jobcatalog.services.page_fetcher import HttpPageFetcher, PlaywrightPageFetcher
from jobcatalog.services.resume_parser import ResumeParser
from jobcatalog.services.semantic import HuggingFaceEmbedder, SemanticSimilarityScorer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jobcatalog",
        description="Crawl a job board into a deduplicated catalog and rank it against a resume",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init-db", help="Create database tables")

    crawl_parser = subparsers.add_parser("crawl", help="Crawl the job board and store listings")
    crawl_parser.add_argument("query", type=str, help="Search terms")
    crawl_parser.add_argument("--location", type=str, default="", help="Location filter")
    crawl_parser.add_argument("--max-pages", type=int, default=settings.max_scrape_pages)
    crawl_parser.add_argument("--expand", action="store_true", help="Also crawl synonyms of the query")
    crawl_parser.add_argument("--browser", action="store_true", help="Render pages with headless chromium")

    resume_parser = subparsers.add_parser("parse-resume", help="Extract a profile from a plain-text resume")
    resume_parser.add_argument("file", type=str, help="Resume text file")

    match_parser = subparsers.add_parser("match", help="Rank stored jobs against a resume")
    match_parser.add_argument("file", type=str, help="Resume text file")
    match_parser.add_argument("--limit", type=int, default=20, help="Number of results to print")
    match_parser.add_argument("--category", type=str, default=None, help="Only match jobs in this category")
    match_parser.add_argument("--no-embeddings", action="store_true", help="Skip the semantic signal")

    purge_parser = subparsers.add_parser("purge", help="Delete jobs not seen recently")
    purge_parser.add_argument("--days", type=int, default=settings.max_job_age_days)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    configure_logging(args.log_level)
    try:
        if args.command == "init-db":
            init_db()
            logger.info("Database initialised at %s", settings.database_url)
        elif args.command == "crawl":
            init_db()
            run = asyncio.run(_crawl(args.query, args.location, args.max_pages, args.expand, args.browser))
            _print_json(run.model_dump(mode="json") if run else None)
        elif args.command == "parse-resume":
            profile = ResumeParser().parse_file(args.file)
            _print_json(profile.model_dump(mode="json", exclude={"raw_text"}))
        elif args.command == "match":
            results = asyncio.run(_match(args.file, args.category, args.no_embeddings))
            _print_json([result.model_dump(mode="json") for result in results[: args.limit]])
        elif args.command == "purge":
            with session_scope() as db:
                removed = JobStore(db).purge_stale_jobs(args.days)
            _print_json({"removed": removed})
    except (JobCatalogError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 0


async def _crawl(query: str, location: str, max_pages: int, expand: bool, browser: bool):
    if browser:
        async with PlaywrightPageFetcher() as fetcher:
            return await _run_crawl(fetcher, query, location, max_pages, expand)
    return await _run_crawl(HttpPageFetcher(), query, location, max_pages, expand)


async def _run_crawl(fetcher, query: str, location: str, max_pages: int, expand: bool):
    manager = CrawlTaskManager(fetcher)
    run_id = await manager.start(query, location, max_pages=max_pages, expand=expand)
    return await manager.wait(run_id)


async def _match(resume_file: str, category: str | None, no_embeddings: bool):
    profile = ResumeParser().parse_file(resume_file)
    if profile.low_confidence:
        logger.warning("Resume text yielded a low-confidence profile; few jobs will match")

    with session_scope() as db:
        jobs = [JobOut.model_validate(job) for job in JobStore(db).iter_jobs(JobFilter(category=category))]
    logger.info("Matching %d stored jobs", len(jobs))

    provider = None if no_embeddings else HuggingFaceEmbedder()
    ranker = MatchRanker(semantic=SemanticSimilarityScorer(provider=provider))
    return await BatchMatchOrchestrator(ranker).match_all(profile, jobs)


def _print_json(payload) -> None:
    json.dump(payload, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


if __name__ == "__main__":
    sys.exit(main())
