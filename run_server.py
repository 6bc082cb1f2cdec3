"""Market-pulse service entry point.

Usage:
    python run_server.py [path/to/config.yaml]

Loads config.yaml and .env, builds the PulseEngine and its providers, and
serves the HTTP API with uvicorn until interrupted.
"""

import sys
from dotenv import load_dotenv

load_dotenv()  # must precede market_pulse imports so env vars are available at module load

import uvicorn  # noqa: E402

from market_pulse.api.server import create_app  # noqa: E402
from market_pulse.core.config import load_config, section, server_port  # noqa: E402
from market_pulse.core.logger import logger  # noqa: E402


def main() -> int:
    """Run the server. Returns 0 on clean shutdown, 1 on startup failure."""
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config.yaml"
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as exc:
        logger.error(f"run_server: failed to load config: {exc}")
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    log_level = section(config, "logging").get("level")
    if log_level:
        logger.setLevel(log_level.upper())

    try:
        app = create_app(config=config)
    except ValueError as exc:
        logger.error(f"run_server: invalid configuration: {exc}")
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    host = section(config, "server").get("host", "0.0.0.0")
    port = server_port(config)
    logger.info("================================================")
    logger.info("  Market-Pulse server is running")
    logger.info(f"  Listening on: http://{host}:{port}")
    logger.info("================================================")
    uvicorn.run(app, host=host, port=port, log_level="info")
    return 0


if __name__ == "__main__":
    sys.exit(main())
