"""Bridge entrypoint. Loads config, builds the routing table, serves the webhooks."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from loguru import logger

from gmbridge import __version__
from gmbridge.adapters import GroupMeAdapter, SlackAdapter
from gmbridge.config import Config, cfg, load_config_with_env
from gmbridge.errors import BridgeConfigurationError
from gmbridge.gateway import Bus, RoutingTable
from gmbridge.server import create_app

# Third-party libraries to intercept and route through loguru
_INTERCEPTED_LIBRARIES = ["uvicorn", "uvicorn.error", "uvicorn.access", "httpx"]


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        msg = record.getMessage().replace("{", "{{").replace("}", "}}")
        logger.patch(
            lambda r: r.update(
                name=record.name,
                function=record.funcName,
                line=record.lineno,
            ),
        ).opt(exception=record.exc_info).log(level, msg)


def _intercept_logging(level: str) -> None:
    """Route third-party library logs to loguru."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for lib in _INTERCEPTED_LIBRARIES:
        lib_logger = logging.getLogger(lib)
        lib_logger.handlers = [InterceptHandler()]
        lib_logger.propagate = False
        # httpx logs every request at INFO
        lib_logger.setLevel("WARNING" if lib == "httpx" and level != "DEBUG" else level)


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru. Replace default logging.
    Level: verbose=True or LOG_LEVEL=DEBUG enables DEBUG; otherwise INFO."""
    level = "INFO"
    if verbose:
        level = "DEBUG"
    else:
        env_level = (os.environ.get("LOG_LEVEL") or "").upper()
        if env_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
            level = env_level

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=("<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> | {message}"),
    )
    _intercept_logging(level)


def reload_config(config_path: Path) -> Config:
    """Load config from path and update global cfg."""
    data = load_config_with_env(config_path)
    cfg.reload(data)
    return cfg


def build_app(config: Config) -> FastAPI:
    """Wire routing table, bus, adapters and HTTP app from config."""
    router = RoutingTable.from_config(config.raw)
    bus = Bus()
    groupme = GroupMeAdapter(
        bus,
        router,
        api_url=config.groupme_api_url,
        timeout=config.request_timeout_seconds,
        delay=config.delivery_delay_seconds,
    )
    slack = SlackAdapter(
        bus,
        router,
        webhook_url=config.slack_webhook_url,
        self_user_id=config.slack_user_id,
        timeout=config.request_timeout_seconds,
        delay=config.delivery_delay_seconds,
    )
    bus.register(groupme)
    bus.register(slack)
    if config.slack_user_id is None:
        logger.warning("slack.user_id not set; Slack loop prevention disabled")
    return create_app(router, groupme, slack)


def main() -> None:
    """Main entrypoint."""
    parser = argparse.ArgumentParser(description="Relay messages between GroupMe groups and Slack channels")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    if not args.config.exists():
        logger.error("Config file not found: {}", args.config)
        sys.exit(1)

    try:
        config = reload_config(args.config)
        logger.info("Config loaded from {}", args.config)
        app = build_app(config)
    except BridgeConfigurationError as exc:
        logger.error("Invalid config: {}", exc)
        sys.exit(1)

    logger.info("Server listening on http://{}:{}/", config.server_name, config.port)
    uvicorn.run(app, host=config.server_name, port=config.port, log_config=None)


if __name__ == "__main__":
    main()
