"""CLI argument parsing and uvicorn entry point."""

import logging
import os


def main():
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="DeskPilot API Server")
    parser.add_argument("--config", default=None, help="Path to config.yaml (overrides DESKPILOT_CONFIG)")
    parser.add_argument("--host", default=os.getenv("DESKPILOT_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("DESKPILOT_PORT", "8000")))
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s: %(name)s - %(message)s",
    )

    if args.config:
        os.environ["DESKPILOT_CONFIG"] = args.config

    from .app import api
    uvicorn.run(api, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
