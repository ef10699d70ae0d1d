"""Main application entry point for the Hyper-V exporter."""

import argparse
import logging
import signal
import sys
import threading
from typing import Optional

from .config.loader import ConfigLoader
from .config.models import ExporterConfig
from .config.settings import Settings
from .errors import ConfigurationError
from .exposition import create_app, create_registry, start_server
from .orchestrator import ScrapeOrchestrator, build_collectors
from .services.counter_source import create_source
from .utils.logger import setup_logger


class ExporterApp:
    """
    Main exporter application.

    Wires configuration, counter source, collectors and the HTTP endpoint
    together and blocks until a shutdown signal arrives.
    """

    def __init__(self, config: ExporterConfig, log_level: Optional[str] = None):
        """
        Initialize exporter application.

        Args:
            config: Validated configuration
            log_level: Overrides config.logging.level when given

        Raises:
            ConfigurationError: If the collector set cannot be built
        """
        self.config = config
        self.logger = setup_logger("hyperv_exporter", log_level or config.logging.level)
        self._stop = threading.Event()
        self.server = None

        self.source = create_source(config.source, self.logger)
        collectors = build_collectors(config.collectors.enabled, self.source, self.logger)
        self.orchestrator = ScrapeOrchestrator(
            collectors,
            self.logger,
            timeout=config.collectors.timeout_seconds
        )
        self.logger.info(
            f"Enabled collectors: {', '.join(collectors) or 'none'} "
            f"(source: {config.source.type})"
        )

    def _signal_handler(self, signum, frame):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
            frame: Current stack frame
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, shutting down Hyper-V exporter")
        self._stop.set()

    def stop(self) -> None:
        self._stop.set()

    def run(self) -> None:
        """Serve scrapes until stopped."""
        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        server_config = self.config.server
        registry = create_registry(self.orchestrator)
        app = create_app(registry, server_config.metrics_path)

        self.server, _ = start_server(app, server_config.listen_address, server_config.port)
        self.logger.info(
            f"Starting server on {server_config.listen_address}:{server_config.port}, "
            f"metrics at {server_config.metrics_path}"
        )

        try:
            while not self._stop.wait(timeout=1.0):
                pass
        finally:
            self.server.shutdown()
            self.server.server_close()
            self.source.close()
            self.logger.info("Server stopped")


def main():
    """
    CLI entry point.

    Parses command-line arguments and starts the exporter.
    """
    parser = argparse.ArgumentParser(
        description='Prometheus exporter for Hyper-V performance counters',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run on the Hyper-V host with defaults (:9182/metrics)
  hyperv-exporter

  # Use a config file (e.g. to query a remote host over SSH)
  hyperv-exporter --config /etc/hyperv_exporter/config.yaml
        """
    )

    parser.add_argument(
        '--config',
        default=Settings().CONFIG_PATH,
        help='Path to configuration file (default: HYPERV_EXPORTER_CONFIG env var, else built-in defaults)'
    )

    parser.add_argument(
        '--log-level',
        default=Settings().LOG_LEVEL,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: LOG_LEVEL env var, else the config file)'
    )

    args = parser.parse_args()

    try:
        config = ConfigLoader.load_from_file(args.config)
        app = ExporterApp(config, log_level=args.log_level)
    except (FileNotFoundError, ConfigurationError) as e:
        logging.basicConfig()
        logging.error(f"Couldn't load configuration: {e}")
        sys.exit(1)

    app.run()


if __name__ == '__main__':
    main()
