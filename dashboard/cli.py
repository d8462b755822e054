import argparse
import json
import logging
import os

from dashboard.monitor import Dashboard
from telemetry import configure_logging

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="otel-proxy-dashboard",
        description="Poll the gateway and upstream and send requests through /proxy.",
    )
    parser.add_argument("--gateway-url", default=os.environ.get("GATEWAY_URL", "http://localhost:3010"))
    parser.add_argument("--upstream-url", default=os.environ.get("UPSTREAM_URL", "http://localhost:3002"))
    parser.add_argument("--timeout", type=float, default=5.0, help="per-request timeout in seconds")
    parser.add_argument("--log-level", default=os.environ.get("LOG_LEVEL", "WARNING"))

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("health", help="check gateway and upstream health once")

    req = sub.add_parser("request", help="send one request through /proxy")
    req.add_argument("method", type=str.upper, choices=["GET", "POST", "PUT", "DELETE"])

    watch = sub.add_parser("watch", help="send GET requests continuously")
    watch.add_argument("--interval", type=float, default=5.0, help="seconds between requests")
    watch.add_argument("--count", type=int, default=None, help="stop after this many requests")
    return parser


def _print(data):
    print(json.dumps(data, indent=2))


def main(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    dash = Dashboard(args.gateway_url, args.upstream_url, timeout=args.timeout)

    if args.command == "health":
        _print(dash.check_health().to_dict())
        return 0 if dash.health.gateway == "UP" else 1

    if args.command == "request":
        entry, data = dash.make_request(args.method)
        _print({"history": entry.to_dict(), "response": data})
        return 0 if 200 <= entry.status_code < 300 else 1

    def show(entry, data):
        line = entry.to_dict()
        line["health"] = {"backend": dash.health.gateway, "upstream": dash.health.upstream}
        print(json.dumps(line))

    try:
        dash.run_continuous(interval=args.interval, count=args.count, on_response=show)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
    _print([e.to_dict() for e in dash.history])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
