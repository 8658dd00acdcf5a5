import os
import sys
import logging

from coordinator.app.pipeline import format_report, run_wordcount
from coordinator.app.settings import settings
from wccommon.errors import WordCountError

USAGE = f"usage: gridwc <num_workers 1-{settings.MAX_WORKERS}> [corpus_path]"


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if not 1 <= len(args) <= 2:
        print(USAGE, file=sys.stderr)
        return 1
    try:
        workers = int(args[0])
    except ValueError:
        print(USAGE, file=sys.stderr)
        return 1
    if not 1 <= workers <= settings.MAX_WORKERS:
        print(USAGE, file=sys.stderr)
        return 1
    corpus = args[1] if len(args) > 1 else settings.CORPUS_PATH

    LOG_LEVEL = os.getenv("COORDINATOR_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s [%(threadName)s] %(message)s"
    )

    try:
        result = run_wordcount(corpus, workers)
    except WordCountError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    print(format_report(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
