"""
Entry point for the UK take-home pay calculator.

Usage:
    python main.py                     # launches the web app at localhost:5000
    python main.py --cli               # runs the terminal interface
    python main.py --log-level DEBUG   # show engine decisions (mode, tax codes)
"""

import argparse
import logging
import os


def _configure_logging(level_name: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.WARNING),
        format="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        description="UK Take-Home Pay Calculator (income tax, NI, tax codes)",
    )
    parser.add_argument(
        "--cli",
        action="store_true",
        help="Run in terminal mode instead of launching the web app",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "WARNING"),
        help="Logging level (default: $LOG_LEVEL or WARNING)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=5000,
        help="Port for the web app (default: 5000)",
    )
    parser.add_argument(
        "--no-pdf",
        action="store_true",
        help="Terminal mode only: skip writing the PDF report",
    )
    args = parser.parse_args()

    _configure_logging(args.log_level)

    if args.cli:
        from cli import run_cli
        run_cli(pdf_path=None if args.no_pdf else "take_home_report.pdf")
    else:
        from app import run_web
        run_web(port=args.port)


if __name__ == "__main__":
    main()
