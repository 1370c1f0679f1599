#!/usr/bin/env python3
"""
dexbridge swap CLI

Command-line tooling for preparing and inspecting swap adapter inputs.

Usage:
    dexbridge-swap <command> [subcommand] [options]

Commands:
    trade       Encode, decode and price packed auxiliary trade data
    criteria    Compute the subsidy criteria of an asset pair
    config      Show, describe or validate adapter configuration
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from enum import Enum
from typing import Any, List, Optional

from dexbridge import __version__


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        import yaml
        return yaml.dump(data, default_flow_style=False)
    elif isinstance(data, dict):
        return "\n".join(f"{k}: {v}" for k, v in data.items())
    return str(data)


def _int_arg(value: str) -> int:
    """Accept decimal or 0x-prefixed hex integers."""
    try:
        return int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}")


class SwapCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="dexbridge-swap",
            description="dexbridge swap adapter tooling",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"dexbridge-swap {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=["json", "yaml", "text"],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--config", "-c",
            help="Adapter configuration file (YAML)",
        )
        self.parser.add_argument(
            "--log-level",
            choices=["debug", "info", "warning", "error", "critical"],
            help="Log level (default: from config)",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        """Register all command groups."""
        self._register_trade_commands()
        self._register_criteria_command()
        self._register_config_commands()

    def _register_trade_commands(self) -> None:
        """Register trade subcommands."""
        trade = self.subparsers.add_parser("trade", help="Packed trade data operations")
        trade_sub = trade.add_subparsers(dest="subcommand")

        # trade encode
        encode = trade_sub.add_parser("encode", help="Pack minimum return and deadline")
        encode.add_argument("--amount", "-a", required=True, type=_int_arg, help="Unscaled minimum return")
        encode.add_argument("--deadline", "-d", type=_int_arg, help="Deadline (Unix seconds)")

        # trade decode
        decode = trade_sub.add_parser("decode", help="Unpack auxiliary data")
        decode.add_argument("aux_data", type=_int_arg, help="Packed value (decimal or 0x hex)")
        decode.add_argument("--policy", "-p", choices=["standard", "six_decimal"], help="Scaling policy")
        decode.add_argument("--asset", help="Output asset address; policy looked up in config")

        # trade price
        price = trade_sub.add_parser("price", help="Convert a token amount to unscaled price data")
        price.add_argument("amount", help="Token amount, e.g. 0.0009")
        price.add_argument("--policy", "-p", choices=["standard", "six_decimal"], default="standard")

    def _register_criteria_command(self) -> None:
        criteria = self.subparsers.add_parser("criteria", help="Subsidy criteria for an asset pair")
        criteria.add_argument("--input", "-i", help="Input token address (omit for native)")
        criteria.add_argument("--output", "-o", help="Output token address (omit for native)")

    def _register_config_commands(self) -> None:
        """Register config subcommands."""
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")
        config_sub.add_parser("show", help="Show effective configuration")
        config_sub.add_parser("describe", help="List settings with their environment variables")
        config_sub.add_parser("validate", help="Validate configuration")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        try:
            config = self._load_config(parsed)
            level = parsed.log_level or config.log_level.get()
            logging.basicConfig(
                level=getattr(logging, level.upper(), logging.INFO),
                format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            )

            fmt = OutputFormat(parsed.format)
            result = self._dispatch(parsed, config)

            if result is not None:
                print(format_output(result, fmt))

            return 0

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except Exception as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return 1

    def _load_config(self, args: argparse.Namespace):
        from dexbridge.swap.config import AdapterConfig
        if args.config:
            return AdapterConfig.from_file(args.config)
        return AdapterConfig()

    def _dispatch(self, args: argparse.Namespace, config) -> Any:
        """Dispatch command to handler."""
        cmd = args.command
        subcmd = getattr(args, "subcommand", None)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {cmd} {subcmd or ''}")

        return handler(args, config)

    # Trade handlers
    def _handle_trade_encode(self, args: argparse.Namespace, config) -> Any:
        from dexbridge.swap.codec import encode_trade_data

        deadline = args.deadline
        if deadline is None:
            deadline = int(time.time()) + config.default_deadline_seconds.get()
        encoded = encode_trade_data(args.amount, deadline)
        return {"aux_data": encoded, "hex": hex(encoded), "amount": args.amount, "deadline": deadline}

    def _handle_trade_decode(self, args: argparse.Namespace, config) -> Any:
        from dexbridge.swap.assets import AssetDescriptor
        from dexbridge.swap.codec import ScalingPolicy, decode_trade_data

        if args.policy and args.asset:
            raise CLIError("--policy and --asset are mutually exclusive", exit_code=2)
        if args.asset:
            policy = config.scaling_registry().policy_for(AssetDescriptor.token(0, args.asset))
        else:
            policy = ScalingPolicy(args.policy or "standard")

        params = decode_trade_data(args.aux_data, policy)
        return {"policy": policy.value, **params.to_dict()}

    def _handle_trade_price(self, args: argparse.Namespace, config) -> Any:
        from dexbridge.swap.codec import ScalingPolicy, price_data_from_amount

        policy = ScalingPolicy(args.policy)
        return {
            "amount": args.amount,
            "policy": policy.value,
            "price_data": price_data_from_amount(args.amount, policy),
        }

    # Criteria handler
    def _handle_criteria(self, args: argparse.Namespace, config) -> Any:
        from dexbridge.swap.assets import AssetDescriptor, subsidy_criteria

        def asset(address: Optional[str]) -> AssetDescriptor:
            return AssetDescriptor.token(0, address) if address else AssetDescriptor.native()

        input_asset, output_asset = asset(args.input), asset(args.output)
        criteria = subsidy_criteria(input_asset, output_asset)
        return {
            "input": input_asset.to_dict(),
            "output": output_asset.to_dict(),
            "criteria": str(criteria),
            "hex": f"0x{criteria:064x}",
        }

    # Config handlers
    def _handle_config_show(self, args: argparse.Namespace, config) -> Any:
        return config.to_dict()

    def _handle_config_describe(self, args: argparse.Namespace, config) -> Any:
        return config.describe()

    def _handle_config_validate(self, args: argparse.Namespace, config) -> Any:
        errors = config.validate()
        return {"valid": len(errors) == 0, "errors": errors}


def main() -> int:
    """CLI entry point."""
    cli = SwapCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
