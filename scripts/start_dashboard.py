import argparse
import logging

from dashboard.dashboard import app
from wgconf.settings import DEFAULT_SETTINGS_PATH, load_settings

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    parser = argparse.ArgumentParser(description="Start the peer dashboard")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5000)
    parser.add_argument("--settings", default=DEFAULT_SETTINGS_PATH)
    args = parser.parse_args()
    load_settings(args.settings)
    app.run(host=args.host, port=args.port)
