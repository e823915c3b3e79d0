import argparse
import os
from functools import lru_cache
from pathlib import Path


@lru_cache
def get_cli_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="logwire",
        description=(
            "Start a logwire syslog receiver.\n\n"
            "Accepts RFC 5424 style syslog messages over TCP and UDP and\n"
            "writes every decoded message to stdout."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to a logwire configuration file"
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "Logging verbosity of the receiver (written to stderr).\n"
            "DEBUG shows every connection, timeout and rejected line.\n\n"
            "Example:\n"
            "  --log-level DEBUG"
        ),
    )

    return parser.parse_args()


@lru_cache
def get_configfile() -> Path:
    args = get_cli_args()

    # Priority: CLI > ENV > default file in current working directory
    raw = args.config or os.getenv("LOGWIRECONFIG")

    if raw is None:
        file = Path.cwd() / "logwire.yaml"
    else:
        file = Path(raw)

    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            "  - Or set the LOGWIRECONFIG environment variable\n"
            "  - Or place a 'logwire.yaml' file in the current working directory."
        )

    return file
