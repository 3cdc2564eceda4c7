import argparse
import json
import logging
import sys

from core.config import get_settings
from pipeline.orchestrator import Orchestrator

log = logging.getLogger(__name__)


def _print(obj):
    print(json.dumps(obj, indent=2, default=str))


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else get_settings().log_level
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def cmd_scan(args):
    orch = Orchestrator()
    target = orch.build_target(args.target, args.ports, args.timeout)
    res = orch.scan(target)
    _print(res.model_dump(mode="json"))


def cmd_audit(args):
    orch = Orchestrator()
    res = orch.run(
        args.target,
        args.ports,
        timeout_s=args.timeout,
        include_local=args.local_checks or None,
        skip_recon=args.skip_recon,
        skip_exploits=args.skip_exploits,
    )
    _print(res)


def cmd_local(args):
    orch = Orchestrator()
    _print([r.model_dump(mode="json") for r in orch.audit_local_system()])


def _add_target_args(p):
    p.add_argument("target", help="hostname or IP address")
    p.add_argument("-p", "--ports", default="common", help='port spec, e.g. "22,80,8000-8010" (default: common)')
    p.add_argument("-t", "--timeout", type=float, default=None, help="per-port connect timeout in seconds")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Single-host security audit (ports, services, protocol probes)")
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="debug logging")
    sub = parser.add_subparsers()

    p_scan = sub.add_parser("scan", help="TCP connect scan only")
    _add_target_args(p_scan)
    p_scan.set_defaults(func=cmd_scan)

    p_audit = sub.add_parser("audit", help="scan + service identification + protocol probes")
    _add_target_args(p_audit)
    p_audit.add_argument("--local-checks", action="store_true", default=False, help="also inspect the local machine")
    p_audit.add_argument("--skip-recon", action="store_true", default=False)
    p_audit.add_argument("--skip-exploits", action="store_true", default=False)
    p_audit.set_defaults(func=cmd_audit)

    p_local = sub.add_parser("local", help="local system checks only (this machine)")
    p_local.set_defaults(func=cmd_local)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    if not hasattr(args, "func"):
        parser.print_help()
        return 1
    try:
        args.func(args)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
