#!/usr/bin/env python
"""Server runner script.

Usage:
    python scripts/run_server.py [--mode dev|prod] [--host HOST] [--port PORT]

Examples:
    python scripts/run_server.py                          # Development mode (default)
    python scripts/run_server.py --mode prod              # Production mode
    python scripts/run_server.py --acronyms data/acr.txt  # Custom knowledge file
    python scripts/run_server.py --no-guidelines          # Without ClinicalAdvisor
"""

import argparse
import os
import sys
from pathlib import Path

import uvicorn

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the Clinical Agents API server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--mode",
        choices=["dev", "prod"],
        default="dev",
        help="Server mode: dev (with reload) or prod",
    )
    parser.add_argument("--host", type=str, default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (default: info for dev, warning for prod)",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML configuration file")
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file")
    parser.add_argument("--acronyms", type=str, default=None, help="Medical acronym knowledge file")
    parser.add_argument("--guidelines", type=str, default=None, help="Clinical guidelines document")
    parser.add_argument(
        "--no-guidelines",
        action="store_true",
        help="Start without the guidelines index (disables ClinicalAdvisor)",
    )
    parser.add_argument("--max-turns", type=int, default=None, help="Specialist turn budget per run")
    parser.add_argument(
        "--discussion",
        action="store_true",
        help="Enable the round-robin discussion phase",
    )
    return parser


def main() -> None:
    """Run the server with the specified configuration."""
    args = build_parser().parse_args()

    from clinical_agents.utils.config import init_config

    config_path = args.config
    if config_path is None:
        default_config = project_root / "configs" / "app.yaml"
        if default_config.exists():
            config_path = str(default_config)

    # Overrides travel through the environment so the app picks them up on import
    overrides = {
        "APP_HOST": args.host,
        "APP_PORT": str(args.port) if args.port else None,
        "ACRONYMS_PATH": args.acronyms,
        "GUIDELINES_PATH": args.guidelines,
        "MAX_TURNS": str(args.max_turns) if args.max_turns else None,
        "DISCUSSION_MODE": "true" if args.discussion else None,
    }
    if args.no_guidelines:
        overrides["GUIDELINES_PATH"] = "none"
    for name, value in overrides.items():
        if value:
            os.environ[name] = value

    config = init_config(yaml_path=config_path, env_file=args.env_file)

    host = args.host or config.app.host
    port = args.port or config.app.port
    dev = args.mode == "dev"
    log_level = args.log_level or ("info" if dev else "warning")

    print(f"\n{'='*60}")
    print(f"  Clinical Agents - {'Development' if dev else 'Production'} Server")
    print(f"{'='*60}")
    print(f"  Host:       {host}")
    print(f"  Port:       {port}")
    print(f"  Model:      {config.llm.model} ({config.llm.provider.value})")
    print(f"  Acronyms:   {config.retrieval.acronyms_path}")
    print(f"  Guidelines: {config.retrieval.guidelines_path or 'disabled'}")
    print(f"  Max turns:  {config.orchestrator.max_turns}")
    print(f"  Log Level:  {log_level}")
    print(f"{'='*60}\n")

    uvicorn.run(
        "clinical_agents.main:app",
        host=host,
        port=port,
        reload=dev,
        reload_dirs=[str(project_root / "clinical_agents")] if dev else None,
        log_level=log_level,
        access_log=dev,
    )


if __name__ == "__main__":
    main()
