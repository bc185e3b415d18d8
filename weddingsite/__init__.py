"""weddingsite - Build and deploy tooling for the wedding website."""

import argparse
import logging
import signal
import sys
from threading import Event
from typing import Optional

__version__ = "0.1.0"

# Global shutdown event for signal handlers
_shutdown_event: Optional[Event] = None

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def _handle_shutdown(signum: int, frame: object) -> None:
    """Signal handler for graceful shutdown."""
    sig_name = signal.Signals(signum).name
    logger.info("Received %s, initiating shutdown...", sig_name)
    if _shutdown_event is not None:
        _shutdown_event.set()


def _load_config_or_exit(path: Optional[str]):
    from .config import ConfigError, load_config

    try:
        config = load_config(path)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)
    if path:
        logger.debug("Configuration loaded from %s", path)
    return config


def _wait_for_shutdown() -> None:
    global _shutdown_event

    _shutdown_event = Event()
    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)
    try:
        _shutdown_event.wait()
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")


def _cmd_build(args: argparse.Namespace) -> None:
    """Execute the build command - hash assets and write the service worker."""
    _setup_logging(args.verbose)
    from .builder import BuildError, build_assets

    config = _load_config_or_exit(args.config)
    try:
        manifest = build_assets(config, args.root)
    except BuildError as e:
        logger.error("Build error: %s", e)
        sys.exit(1)
    logger.info("Processed %d hashed assets", len(manifest.assets))


def _cmd_invalidate(args: argparse.Namespace) -> None:
    """Execute the invalidate command - purge HTML/JSON from configured CDNs."""
    _setup_logging(args.verbose)
    from .cdn import CdnInvalidator

    config = _load_config_or_exit(args.config)
    results = CdnInvalidator(config.cdn).invalidate_all()

    if not results:
        logger.warning("No CDN providers configured")
    if any(not result.success for result in results):
        sys.exit(1)


def _cmd_serve(args: argparse.Namespace) -> None:
    """Execute the serve command - run the gallery proxy until interrupted."""
    _setup_logging(args.verbose)
    from dataclasses import replace

    from .config import ConfigError
    from .gallery import GalleryServer, ServerError

    config = _load_config_or_exit(args.config)
    gallery = config.gallery
    try:
        if args.port is not None:
            gallery = replace(gallery, port=args.port)
        if args.site_dir is not None:
            gallery = replace(gallery, site_dir=args.site_dir)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    server = GalleryServer(gallery)
    try:
        server.start()
    except ServerError as e:
        logger.error("Failed to start gallery server: %s", e)
        sys.exit(1)

    try:
        _wait_for_shutdown()
    finally:
        server.stop()
        logger.info("Shutdown complete")


def _cmd_watch(args: argparse.Namespace) -> None:
    """Execute the watch command - log new versions of a deployed site."""
    _setup_logging(args.verbose)
    from .updates import UpdateChecker

    config = _load_config_or_exit(args.config)

    def _on_update(manifest) -> None:
        logger.info("Deployed version is now %s (built %s)", manifest.version, manifest.build_time)
        checker.resume(manifest.version)

    checker = UpdateChecker(args.url, config.updates, on_update=_on_update)
    checker.initialize()
    checker.start()
    try:
        _wait_for_shutdown()
    finally:
        checker.stop()


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file (default: built-in defaults plus environment)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the weddingsite package."""
    parser = argparse.ArgumentParser(
        description="weddingsite - Build and deploy tooling for the wedding website"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"weddingsite {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    build_parser = subparsers.add_parser(
        "build",
        help="Hash assets, rewrite HTML and write version.json and sw.js",
    )
    _add_common_arguments(build_parser)
    build_parser.add_argument(
        "--root",
        default=".",
        help="Project root containing assets/ and pages/ (default: current directory)",
    )
    build_parser.set_defaults(func=_cmd_build)

    invalidate_parser = subparsers.add_parser(
        "invalidate",
        help="Purge HTML and JSON files from configured CDNs",
    )
    _add_common_arguments(invalidate_parser)
    invalidate_parser.set_defaults(func=_cmd_invalidate)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the gallery proxy (and optionally preview the built site)",
    )
    _add_common_arguments(serve_parser)
    serve_parser.add_argument(
        "--port",
        type=int,
        help="Port to listen on (overrides config)",
    )
    serve_parser.add_argument(
        "--site-dir",
        help="Serve built site files from this directory",
    )
    serve_parser.set_defaults(func=_cmd_serve)

    watch_parser = subparsers.add_parser(
        "watch",
        help="Poll a deployed version.json and log new versions",
    )
    _add_common_arguments(watch_parser)
    watch_parser.add_argument(
        "--url",
        required=True,
        help="Absolute URL of the deployed version.json",
    )
    watch_parser.set_defaults(func=_cmd_watch)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(2)

    args.func(args)
