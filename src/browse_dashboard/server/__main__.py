from __future__ import annotations

import logging
import os

from browse_dashboard.config import parse_bool
from browse_dashboard.server.app import create_app

if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "5000"))
    debug = parse_bool(os.environ.get("FLASK_DEBUG"), default=False)
    create_app().run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
