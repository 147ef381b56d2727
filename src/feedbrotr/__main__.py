"""CLI entry point for feedbrotr services.

Examples:
    ```bash
    python -m feedbrotr ingestor --once --feed feed.jsonl
    python -m feedbrotr ingestor --log-level DEBUG
    python -m feedbrotr ingestor --config config/services/ingestor.yaml --rescan
    ```
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Any, NamedTuple

from pydantic import ValidationError

from feedbrotr.core import Brotr, start_metrics_server
from feedbrotr.core.base_service import BaseService
from feedbrotr.core.exceptions import FeedBrotrError
from feedbrotr.core.logger import Logger, setup_logging
from feedbrotr.core.yaml import load_yaml
from feedbrotr.models.constants import ServiceName
from feedbrotr.services.ingestor import Ingestor


CONFIG_BASE = Path("config")
CORE_CONFIG = CONFIG_BASE / "brotr.yaml"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


class ServiceEntry(NamedTuple):
    """Registry entry mapping a service to its class and default config path."""

    cls: type[BaseService[Any]]
    config_path: Path


SERVICE_REGISTRY: dict[str, ServiceEntry] = {
    ServiceName.INGESTOR: ServiceEntry(Ingestor, CONFIG_BASE / "services" / "ingestor.yaml"),
}

logger = Logger("cli")


async def run_service(
    service_name: str,
    service: BaseService[Any],
    *,
    once: bool,
) -> int:
    """Run *service* for one cycle (``once``) or until a shutdown signal.

    SIGINT and SIGTERM request a graceful shutdown: the current envelope is
    finished and in-flight media archival is awaited.

    Returns:
        Exit code: 0 for success, 1 for failure.
    """

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        service.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    if once:
        try:
            async with service:
                await service.run()
        except Exception as e:  # CLI error boundary for one-shot mode
            logger.error(f"{service_name}_failed", error=str(e), error_type=type(e).__name__)
            return EXIT_FAILURE
        logger.info(f"{service_name}_completed")
        return EXIT_OK

    metrics_config = service.config.metrics
    metrics_server = await start_metrics_server(metrics_config)
    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    try:
        async with service:
            await service.run_forever()
        return EXIT_OK
    except Exception as e:  # CLI error boundary for continuous mode
        logger.error(f"{service_name}_failed", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILURE
    finally:
        await metrics_server.stop()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the service runner."""
    parser = argparse.ArgumentParser(prog="feedbrotr", description="feedbrotr service runner")
    parser.add_argument("service", choices=list(SERVICE_REGISTRY), help="Service to run")
    parser.add_argument(
        "--config",
        type=Path,
        help="Service config path (default: config/services/<service>.yaml)",
    )
    parser.add_argument(
        "--brotr-config",
        type=Path,
        default=CORE_CONFIG,
        help=f"Brotr config path (default: {CORE_CONFIG})",
    )
    parser.add_argument("--feed", type=Path, help="JSON-lines feed file (overrides feed.path)")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Consume the feed once and exit (default: run continuously)",
    )
    parser.add_argument(
        "--rescan",
        action="store_true",
        help="Replay mode: do not archive media",
    )
    return parser.parse_args(argv)


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(path)


def _apply_cli_overrides(service_dict: dict[str, Any], args: argparse.Namespace) -> None:
    if args.feed is not None:
        service_dict.setdefault("feed", {})["path"] = str(args.feed)
    if args.rescan:
        service_dict.setdefault("processing", {})["rescan"] = True


def _apply_pool_overrides(brotr_dict: dict[str, Any], service_name: str) -> None:
    """Default the PostgreSQL ``application_name`` to the service name."""
    pool = brotr_dict.setdefault("pool", {})
    pool.setdefault("application_name", service_name)


async def main(argv: list[str] | None = None) -> int:
    """Parse args, build Brotr and the service, and run it."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    entry = SERVICE_REGISTRY[args.service]
    try:
        brotr_dict = _load_yaml_dict(args.brotr_config)
        service_dict = _load_yaml_dict(args.config or entry.config_path)
        _apply_cli_overrides(service_dict, args)
        _apply_pool_overrides(brotr_dict, args.service)
        brotr = Brotr.from_dict(brotr_dict)
        service = entry.cls.from_dict(service_dict, brotr=brotr)
    except (FeedBrotrError, ValidationError, OSError) as e:
        logger.error("config_invalid", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILURE

    try:
        async with brotr:
            return await run_service(args.service, service, once=args.once)
    except (FeedBrotrError, OSError) as e:
        logger.error("connection_failed", error=str(e), error_type=type(e).__name__)
        return EXIT_FAILURE


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("interrupted")
        code = EXIT_INTERRUPTED
    sys.exit(code)


if __name__ == "__main__":
    cli()
