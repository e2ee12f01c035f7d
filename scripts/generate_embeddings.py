import argparse
import asyncio
import logging
import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from anime_embeddings.config import settings
from anime_embeddings.db import dispose_engine, session_scope
from anime_embeddings.embeddings.jobs import JobProgress
from anime_embeddings.core.cache import RedisCache
from anime_embeddings.service import build_cache, build_sql_engine


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate TF-IDF embeddings for all anime.")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.batch_size,
        help="Anime per page (default: %(default)s)",
    )
    return parser.parse_args()


def print_progress(progress: JobProgress) -> None:
    eta = f"{progress.eta_seconds:.0f}s" if progress.eta_seconds is not None else "?"
    print(
        f"   Batch {progress.page}/{progress.total_pages}: "
        f"{progress.visited}/{progress.total} ({progress.percent:.1f}%) "
        f"built={progress.successful} skipped={progress.skipped} failed={progress.failed} "
        f"rate={progress.rate:.1f}/s eta={eta}"
    )


async def main(batch_size: int) -> None:
    async with session_scope() as session:
        cache = build_cache()
        engine = build_sql_engine(session, cache=cache)

        print("Checking current embedding status...")
        before = await engine.get_embedding_stats()
        print(f"   Total anime:     {before.total_items}")
        print(f"   With embeddings: {before.with_embeddings}")
        print(f"   Coverage:        {before.coverage * 100:.1f}%")
        print(f"   Vector size:     {before.average_vector_size} dimensions\n")

        print(f"Processing in batches of {batch_size}...")
        report = await engine.generate_all_anime_embeddings(
            batch_size=batch_size,
            on_progress=print_progress,
        )

        after = await engine.get_embedding_stats()

    if isinstance(cache, RedisCache):
        await cache.close()
    await dispose_engine()

    print("\nEmbedding generation complete")
    print(f"   Duration:   {report.duration_seconds / 60:.2f} minutes")
    print(f"   Visited:    {report.visited}")
    print(f"   Processed:  {report.processed} (build attempts)")
    print(f"   Built:      {report.successful}")
    print(f"   Skipped:    {report.skipped} (already had embeddings)")
    print(f"   Failed:     {report.failed}")
    print(f"   Coverage:   {after.coverage * 100:.1f}%")

    if after.coverage < 0.80:
        print("Low coverage: some anime may be missing descriptions or genres.")

    if report.failed:
        sys.exit(1)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args()
    asyncio.run(main(args.batch_size))
