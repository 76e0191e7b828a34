#!/usr/bin/env python3
"""
chatbridge Command Line Client

Connects to a protocol engine bridge, prints pairing codes, and logs every
inbound message until interrupted.

Configuration comes from CHATBRIDGE_* environment variables, overridden by
command line arguments.
"""

import argparse
import asyncio
import logging
import sys

from .bridge import BridgeTransport
from .client import SocketClient
from .config import (
    DEFAULT_AUTH_DIR,
    SocketClientConfig,
    build_client_config,
    load_config_from_env,
)
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BRIDGE_URL = "ws://localhost:8765"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Run a chatbridge client against a protocol bridge"
    )
    parser.add_argument("--bridge-url", help="WebSocket URL of the bridge")
    parser.add_argument("--auth-dir", help="Directory for session credentials")
    parser.add_argument(
        "--no-qr",
        action="store_true",
        help="Do not print pairing codes to the terminal",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser.parse_args(argv)


def build_config(args, environ=None) -> SocketClientConfig:
    """
    Merge environment configuration with command line arguments.

    Raises:
        ConfigurationError: If the configuration does not target the
                            socket backend
    """
    config = load_config_from_env(environ)
    if args.auth_dir:
        config["auth_dir"] = args.auth_dir
    if args.bridge_url:
        config["bridge_url"] = args.bridge_url
    if args.no_qr:
        config["print_qr_in_terminal"] = False
    if not any(key in config for key in ("auth_dir", "access_token", "auth_method")):
        config["auth_dir"] = DEFAULT_AUTH_DIR

    client_config = build_client_config(config)
    if not isinstance(client_config, SocketClientConfig):
        raise ConfigurationError(
            "The Cloud API backend (phone number id "
            f"{client_config.phone_number_id}) is not available in this client"
        )
    return client_config


async def run_client(config: SocketClientConfig) -> None:
    """Run the client until cancelled."""
    transport = BridgeTransport(config.bridge_url or DEFAULT_BRIDGE_URL)
    client = SocketClient(config, transport)

    def on_message(message):
        logger.info(
            "Message from %s in %s: %s",
            message.push_name or message.sender,
            message.chat_id,
            message.text if message.text is not None else message.content.type.value,
        )

    def on_error(error):
        logger.error("Client error: %s", error)

    client.on("ready", lambda: logger.info("Client is ready"))
    client.on("message", on_message)
    client.on("error", on_error)

    await client.start()
    try:
        await asyncio.Event().wait()
    except asyncio.CancelledError:
        logger.info("Client shutdown requested")
    finally:
        await client.stop()
        logger.info("Client stopped")


def main(argv=None):
    """Main entry point for the chatbridge client."""
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = build_config(args)
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(2)

    try:
        asyncio.run(run_client(config))
    except KeyboardInterrupt:
        logger.info("Shutting down client...")
        sys.exit(0)


if __name__ == "__main__":
    main()
