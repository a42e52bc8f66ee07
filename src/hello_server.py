# Hello World web server shipped as the container image's only process
# Every request, any method and any path, gets the same static HTML page
from flask import Flask, request, g, Response
from werkzeug.exceptions import HTTPException
from werkzeug.serving import WSGIRequestHandler, make_server
from prometheus_client import Counter, Histogram, start_http_server
import os
import socket
import signal
import sys
import threading
import time

PAGE = """<!DOCTYPE html>
<html>
<head>
    <title>Hello World Python App</title>
    <style>
        body { font-family: Arial, sans-serif; text-align: center; margin-top: 100px; }
        h1 { color: #333; font-size: 3em; }
    </style>
</head>
<body>
    <h1>Hello! World</h1>
    <p>Python application running in Docker</p>
</body>
</html>
""".encode('utf-8')

CONTENT_TYPE = 'text/html'

DEFAULT_PORT = 8080
DEFAULT_HOST = '0.0.0.0'

# seconds a client may stall before its request is complete; also bounds the
# shutdown drain, since werkzeug closes every connection after one response
READ_TIMEOUT = 5

ANY_METHOD = ['GET', 'HEAD', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS', 'TRACE']

# Prometheus metrics
REQUEST_COUNT = Counter(
    'hello_http_requests_total',
    'Total number of HTTP requests answered with the page',
    ['method', 'endpoint', 'status']
)
REQUEST_LATENCY = Histogram(
    'hello_http_request_latency_seconds',
    'Latency of HTTP requests answered with the page',
    ['endpoint']
)
MALFORMED_REQUESTS = Counter(
    'hello_malformed_requests_total',
    'Requests whose request line could not be parsed'
)

app = Flask(__name__)
# "//x" and "/x/" must not be redirected, they get the page like any other path
app.url_map.merge_slashes = False
app.url_map.strict_slashes = False


@app.before_request
def start_timer():
    g.request_start_time = time.time()


@app.after_request
def record_request_metrics(response):
    """Count the request and observe its latency"""
    elapsed = time.time() - getattr(g, 'request_start_time', time.time())
    endpoint = request.endpoint or 'unmatched'
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(elapsed)
    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=endpoint,
        status=response.status_code
    ).inc()
    return response


def page_response():
    return Response(PAGE, status=200, content_type=CONTENT_TYPE)


@app.route('/', defaults={'path': ''}, methods=ANY_METHOD)
@app.route('/<path:path>', methods=ANY_METHOD)
def page(path):
    return page_response()


@app.errorhandler(HTTPException)
def page_for_http_error(e):
    # unknown methods (405) and unroutable paths (404) still get the page
    return page_response()


class StaticPageRequestHandler(WSGIRequestHandler):
    """Request handler that answers unparseable request lines with the page.

    ``BaseHTTPRequestHandler.parse_request`` reports a broken request line,
    an oversized header block or an unsupported HTTP version through
    ``send_error``. Instead of the stock error document the client receives
    the regular 200 page, and the connection is closed because the position
    in the input stream is no longer known.
    """

    protocol_version = 'HTTP/1.1'
    timeout = READ_TIMEOUT

    def send_error(self, code, message=None, explain=None):
        MALFORMED_REQUESTS.inc()
        self.close_connection = True
        self.log_error('malformed request (%s %s): %r', code, message, getattr(self, 'requestline', ''))
        head = (
            '{} 200 OK\r\n'
            'Content-Type: {}\r\n'
            'Content-Length: {}\r\n'
            'Connection: close\r\n'
            '\r\n'
        ).format(self.protocol_version, CONTENT_TYPE, len(PAGE))
        try:
            self.wfile.write(head.encode('latin-1') + PAGE)
            self.wfile.flush()
        except (ConnectionError, TimeoutError) as e:
            self.connection_dropped(e)


def create_server(host=DEFAULT_HOST, port=DEFAULT_PORT):
    """Bind the listener and return a threaded server, not yet serving.

    The socket is bound here rather than inside werkzeug so a bind failure
    surfaces as ``OSError`` to the caller instead of a ``sys.exit`` from
    werkzeug. The bound port is available as ``server.port``.
    """
    family = socket.AF_INET6 if ':' in host else socket.AF_INET
    listener = socket.create_server((host, port), family=family, backlog=128)
    try:
        # werkzeug duplicates the descriptor, the original is closed below
        server = make_server(
            host, listener.getsockname()[1], app,
            threaded=True,
            request_handler=StaticPageRequestHandler,
            fd=listener.fileno(),
        )
    finally:
        listener.close()
    # werkzeug marks handler threads as daemons, server_close() only joins non-daemon ones
    server.daemon_threads = False
    return server


def install_shutdown_handlers(server):
    """Stop accepting on SIGTERM/SIGINT; serve_forever then returns in the main thread"""
    def handle_signal(signum, frame):
        print(f"Received signal {signum}, shutting down", flush=True)
        # shutdown() waits for serve_forever to exit, so it cannot run on the serving thread
        threading.Thread(target=server.shutdown, daemon=True).start()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)


def read_port(name, default=None):
    value = os.getenv(name)
    if value is None or value == '':
        return default
    try:
        port = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if not 0 <= port <= 65535:
        raise ValueError(f"{name} must be between 0 and 65535, got {port}")
    return port


def main():
    try:
        port = read_port('PORT', DEFAULT_PORT)
        metrics_port = read_port('METRICS_PORT')
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)
    host = os.getenv('HOST') or DEFAULT_HOST

    try:
        server = create_server(host, port)
    except OSError as e:
        print(f"Failed to bind {host}:{port}: {e}", file=sys.stderr)
        sys.exit(1)

    if metrics_port is not None:
        try:
            start_http_server(metrics_port, addr=host)
        except OSError as e:
            server.server_close()
            print(f"Failed to bind {host}:{metrics_port}: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Metrics available on http://localhost:{metrics_port}/metrics", flush=True)

    install_shutdown_handlers(server)
    print(f"Server started on http://localhost:{server.port}", flush=True)
    try:
        server.serve_forever()
    finally:
        # waits for in-flight requests, each bounded by READ_TIMEOUT
        server.server_close()
    print("Server stopped", flush=True)


if __name__ == '__main__':
    main()
