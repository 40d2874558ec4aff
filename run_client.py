"""
Run Client: connect to the Kubernetes MCP server and call a tool.

This is the prototype that exercises the whole client path. It:
1. Builds a ServerConfig from the command line
2. Spawns the server and initializes a session
3. Lists the available tools
4. Calls one tool
5. Prints each text part of the result

Usage:
    # List tools offered by the server
    python run_client.py --list

    # Call namespaces_list (the default tool) against a read-only server
    python run_client.py --read-only

    # Call a tool with arguments, using a specific kubeconfig
    python run_client.py --kubeconfig ~/.kube/staging --tool pods_list_in_namespace --args '{"namespace": "kube-system"}'

    # Point at the mock server instead of npx
    python run_client.py --command python -m kube_mcp.servers.mock_k8s
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure project root is on path
PROJECT_ROOT = Path(__file__).parent.resolve()
sys.path.insert(0, str(PROJECT_ROOT))

from kube_mcp import Client, ServerConfig, ToolClientError, print_result

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

DEFAULT_TOOL = "namespaces_list"


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Map command-line flags onto ServerConfig builders."""
    if args.command:
        cfg = ServerConfig(command=args.command[0], args=tuple(args.command[1:]))
    else:
        cfg = ServerConfig.default()

    if args.read_only:
        cfg = cfg.with_read_only()
    if args.kubeconfig:
        cfg = cfg.with_kubeconfig(args.kubeconfig)
    if args.kubeconfig_env:
        cfg = cfg.with_kubeconfig_env(args.kubeconfig_env)
    return cfg


def parse_tool_args(raw: str | None) -> dict:
    if not raw:
        return {}
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError("--args must be a JSON object")
    return parsed


def run(args: argparse.Namespace) -> int:
    try:
        tool_args = parse_tool_args(args.args)
    except ValueError as e:
        print(f"Error: invalid --args: {e}")
        return 2

    cfg = build_config(args)
    client = Client(cfg)

    try:
        client.connect(timeout=args.timeout)

        tools = client.list_tools(timeout=args.timeout)
        if args.list:
            print(f"\nAvailable tools ({len(tools)}):\n")
            for tool in tools:
                print(f"  {tool.name:<35} {tool.description}")
            return 0

        logger.info(f"Server offers {len(tools)} tools")
        result = client.call_tool(args.tool, tool_args, timeout=args.timeout)
        print_result(result, print)
        return 1 if result.is_error else 0
    except (ToolClientError, OSError) as e:
        print(f"Error: {e}")
        return 1
    finally:
        client.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Call a tool on the Kubernetes MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_client.py --list
  python run_client.py --read-only --tool namespaces_list
  python run_client.py --kubeconfig-env /tmp/kubeconfig --tool pods_log --args '{"name": "web-0"}'
        """,
    )
    parser.add_argument("--list", action="store_true", help="List available tools and exit")
    parser.add_argument("--tool", "-t", type=str, default=DEFAULT_TOOL, help=f"Tool to call (default: {DEFAULT_TOOL})")
    parser.add_argument("--args", "-a", type=str, default=None, help="Tool arguments as a JSON object")
    parser.add_argument("--read-only", action="store_true", help="Start the server in read-only mode")
    kubeconfig = parser.add_mutually_exclusive_group()
    kubeconfig.add_argument("--kubeconfig", type=str, default=None, help="Pass --kubeconfig PATH to the server")
    kubeconfig.add_argument("--kubeconfig-env", type=str, default=None, help="Set KUBECONFIG=PATH in the server environment")
    parser.add_argument("--timeout", type=float, default=60.0, help="Per-request timeout in seconds")
    parser.add_argument("--command", nargs=argparse.REMAINDER, default=None, help="Server command line (default: npx -y kubernetes-mcp-server@latest)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    return run(args)


if __name__ == "__main__":
    sys.exit(main())
