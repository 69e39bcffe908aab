"""Allow running orchestrator as: python -m signal_engine.orchestrator [--config path]."""

import argparse

from signal_engine.orchestrator.runner import main

parser = argparse.ArgumentParser(description="Trading signal orchestrator")
parser.add_argument("--config", default=None, help="Path to config.yaml")
parser.add_argument("--memory", action="store_true", help="Keep signals in memory instead of the database")
args = parser.parse_args()
main(config_path=args.config, in_memory=args.memory)
