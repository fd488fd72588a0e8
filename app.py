#!/usr/bin/env python3
"""aimindmap API server"""

import argparse

from dotenv import load_dotenv

from aimindmap import AIMindMapServer


def parse_arguments():
    """ArgParse argument parsing"""
    parser = argparse.ArgumentParser(description="AI mind map and newsletter server")

    parser.add_argument(
        "-l", "--listen", type=str, default="localhost", help="Hostname/IP to listen on"
    )
    parser.add_argument(
        "-p", "--port", type=int, default=13338, help="Port to listen on"
    )
    parser.add_argument(
        "-d", "--debug", action="store_true", default=False, help="Werkzeug debug mode"
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to config JSON file (default: $CONFIG_PATH or ./config.json)",
    )

    return parser.parse_args()


def start():
    """Meant to be used by Gunicorn"""
    load_dotenv()
    return AIMindMapServer().app


if __name__ == "__main__":
    load_dotenv()
    cli_args = parse_arguments()
    AIMindMapServer("aimindmap", cli_args.config).app.run(
        host=cli_args.listen, port=cli_args.port, debug=cli_args.debug
    )
