import argparse
from pathlib import Path

import uvicorn

from Parts_Detection_API import configure_logging, create_app, get_config, load_service_config
from Parts_Detection_API.config import apply_env_overrides


def main() -> int:
    parser = argparse.ArgumentParser(description="Serve the parts detector over HTTP (POST /api/detect).")
    parser.add_argument("--config", default=None, help="Optional service config JSON (overrides PARTSCAN_CONFIG).")
    parser.add_argument("--host", default=None, help="Bind address (default from config).")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default from config).")
    args = parser.parse_args()

    cfg = apply_env_overrides(load_service_config(Path(args.config))) if args.config else get_config()
    configure_logging(cfg.log_level)

    app = create_app(cfg)
    uvicorn.run(
        app,
        host=args.host or cfg.host,
        port=args.port or cfg.port,
        log_level=cfg.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
