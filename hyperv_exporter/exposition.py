"""Prometheus exposition: sample stream to metric families, served over HTTP."""

import asyncio
import logging
import threading
from socketserver import ThreadingMixIn
from typing import Dict, Iterable, List, Tuple
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import CollectorRegistry, make_wsgi_app
from prometheus_client.core import GaugeMetricFamily

from .orchestrator import ScrapeOrchestrator
from .utils.metrics import MetricDescriptor, MetricStream, Sample


HEALTH_PATH = "/health"

LANDING_PAGE = """<html>
<head><title>Hyper-V exporter</title></head>
<body>
<h1>Hyper-V exporter</h1>
<p><a href='{metrics_path}'>Metrics</a></p>
</body>
</html>
"""


def to_metric_families(samples: Iterable[Sample]) -> List[GaugeMetricFamily]:
    """
    Group samples by descriptor into gauge families.

    Args:
        samples: Samples of one scrape, in any order

    Returns:
        List[GaugeMetricFamily]: One family per descriptor, in first-seen order
    """
    families: Dict[MetricDescriptor, GaugeMetricFamily] = {}

    for sample in samples:
        descriptor = sample.descriptor
        family = families.get(descriptor)
        if family is None:
            family = GaugeMetricFamily(
                descriptor.fq_name,
                descriptor.help,
                labels=list(descriptor.label_names)
            )
            families[descriptor] = family
        family.add_metric(list(sample.label_values), sample.value)

    return list(families.values())


class ScrapeCollector:
    """
    prometheus_client collector that runs a full scrape per collect() call.

    The scrape is awaited before returning, so the HTTP response always
    contains the complete sample set of that scrape. describe() lists every
    family from the collectors' descriptor tables without scraping, so the
    registry can serve `?name[]=` filtered requests.
    """

    def __init__(self, orchestrator: ScrapeOrchestrator):
        self.orchestrator = orchestrator

    def describe(self) -> List[GaugeMetricFamily]:
        return [
            GaugeMetricFamily(d.fq_name, d.help, labels=list(d.label_names))
            for d in self.orchestrator.descriptors()
        ]

    def collect(self) -> List[GaugeMetricFamily]:
        stream = MetricStream()
        asyncio.run(self.orchestrator.run_scrape(stream))
        return to_metric_families(stream.samples)


def create_registry(orchestrator: ScrapeOrchestrator) -> CollectorRegistry:
    """Create a registry holding only the exporter's scrape collector."""
    registry = CollectorRegistry(auto_describe=False)
    registry.register(ScrapeCollector(orchestrator))
    return registry


def create_app(registry: CollectorRegistry, metrics_path: str = "/metrics"):
    """
    Build the WSGI application.

    Routes:
        metrics_path: Prometheus exposition of one scrape
        /health: {"status":"ok"}
        /: landing page linking to metrics_path

    Returns:
        WSGI callable
    """
    metrics_app = make_wsgi_app(registry)
    landing_page = LANDING_PAGE.format(metrics_path=metrics_path).encode('utf-8')

    def app(environ, start_response):
        path = environ.get('PATH_INFO') or '/'

        if path == metrics_path:
            return metrics_app(environ, start_response)

        if path == HEALTH_PATH:
            start_response('200 OK', [('Content-Type', 'application/json')])
            return [b'{"status":"ok"}']

        if path == '/':
            start_response('200 OK', [('Content-Type', 'text/html; charset=utf-8')])
            return [landing_page]

        start_response('404 Not Found', [('Content-Type', 'text/plain')])
        return [b'Not Found']

    return app


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """WSGI server handling each request in its own thread."""

    daemon_threads = True


class QuietRequestHandler(WSGIRequestHandler):
    """Request handler that routes access logs to the debug logger."""

    logger = logging.getLogger("hyperv_exporter.http")

    def log_message(self, format, *args):
        self.logger.debug(format % args)


def start_server(app, listen_address: str, port: int) -> Tuple[WSGIServer, threading.Thread]:
    """
    Serve app in a background thread.

    Returns:
        (server, thread); call server.shutdown() to stop
    """
    server = make_server(
        listen_address, port, app,
        server_class=ThreadingWSGIServer,
        handler_class=QuietRequestHandler
    )
    thread = threading.Thread(target=server.serve_forever, name="http-server", daemon=True)
    thread.start()
    return server, thread
