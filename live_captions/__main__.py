"""Package entry point for ``python -m live_captions``.

WHY: Users replay a recorded event log with
``python -m live_captions events.jsonl``, or start the host service for
a browser capture page with ``python -m live_captions --serve``.

HOW: Checks sys.argv for the ``--serve`` flag. If present, runs the
FastAPI app under uvicorn. Otherwise, delegates to the CLI's main().
"""

import sys

if __name__ == "__main__":
    if "--serve" in sys.argv:
        from live_captions.server.app import run_api
        run_api()
    else:
        from live_captions.cli import main
        main()
