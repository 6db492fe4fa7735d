from __future__ import annotations

from typing import Optional, Sequence
import argparse
import logging
import sys

from llama_switch.app.logging_setup import configure_logging
from llama_switch.app.model_selection import InputFn
from llama_switch.app.settings import build_settings, get_app_log_dir
from llama_switch.app.workflow import SwitchWorkflow
from llama_switch.errors import SwitchError
from llama_switch.interfaces.service.manager import ServiceManager
from llama_switch.services.service_controller import SystemdServiceManager
from llama_switch.utils.terminal_ui import Color, type_print

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="switch-model",
        description="Switch the GGUF model served by the llama-server systemd unit.",
    )
    parser.add_argument("--models-dir", help="Directory holding the model files")
    parser.add_argument("--service-file", help="systemd unit file to patch")
    parser.add_argument("--service-name", help="systemd unit to restart")
    parser.add_argument("--verify-attempts", type=int, help="How many times to check the unit is active")
    parser.add_argument("--verify-interval", type=float, help="Seconds to wait before each check")
    parser.add_argument("--health-url", help="Also wait for this URL to answer 200 (e.g. http://127.0.0.1:8081/health)")
    parser.add_argument("--no-restart", action="store_true", help="Patch the unit file only")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--list", action="store_true", help="List the models and exit")
    mode.add_argument("--restore", action="store_true", help="Restore the unit file from its backup and restart")
    mode.add_argument("--select", metavar="TOKEN", help="Pick a model by number or file name without prompting")
    return parser


def _cli_overrides(args: argparse.Namespace) -> dict:
    return {
        "models_dir": args.models_dir,
        "service_file": args.service_file,
        "service_name": args.service_name,
        "verify_attempts": args.verify_attempts,
        "verify_interval_s": args.verify_interval,
        "health_url": args.health_url,
    }


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    input_fn: InputFn = input,
    manager: Optional[ServiceManager] = None,
) -> int:
    args = build_parser().parse_args(argv)
    log_file = configure_logging(args.verbose, get_app_log_dir())
    logger.debug("switch-model started with %s (log: %s)", args, log_file)

    type_print("=== Llama Server Model Switcher ===\n", color=Color.BLUE)
    try:
        cfg = build_settings(_cli_overrides(args))
        workflow = SwitchWorkflow(
            cfg=cfg,
            manager=manager if manager is not None else SystemdServiceManager(cfg.systemctl_cmd),
            input_fn=input_fn,
        )
        if args.list:
            workflow.list_catalog()
            return 0
        if args.restore:
            workflow.restore(restart=not args.no_restart)
        else:
            workflow.run(select=args.select, restart=not args.no_restart)
    except SwitchError as e:
        logger.info("Switch aborted (%s): %s", type(e).__name__, e)
        type_print(f"Error: {e}", color=Color.RED, file=sys.stderr)
        return e.exit_code
    except (KeyboardInterrupt, EOFError):
        logger.info("Cancelled by operator")
        type_print("\nCancelled.", color=Color.RED, file=sys.stderr)
        return 130

    type_print("\nDone!", color=Color.BLUE)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
