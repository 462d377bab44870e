"""Module entrypoint.

Allows:
    python -m live_stream_engine
"""

from __future__ import annotations

from live_stream_engine.server.stream_server import main

if __name__ == "__main__":
    main()
