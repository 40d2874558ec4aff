"""
Mock Kubernetes MCP Tool Server.

Stands in for kubernetes-mcp-server when no cluster is available. It serves
a fixed, in-memory cluster over stdin/stdout, which is enough to exercise
the process transport end to end.

Launch:
    python -m kube_mcp.servers.mock_k8s

Test:
    echo '{"jsonrpc":"2.0","method":"ping","id":1}' | python -m kube_mcp.servers.mock_k8s

Use it from the client:
    cfg = ServerConfig(sys.executable, ("-m", "kube_mcp.servers.mock_k8s"))
"""

import argparse
import logging
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from kube_mcp.server import ToolServer, ToolHandler

PODS = {
    "default": ["web-7d4b9c-x2x9q", "worker-5f6d8-kq7mz"],
    "kube-system": ["coredns-6f6b679f8f-4kq2n", "etcd-control-plane"],
}


class NamespacesListTool(ToolHandler):
    name = "namespaces_list"
    description = "List all the Kubernetes namespaces in the current cluster"

    def handle(self, params: dict) -> list:
        return list(PODS)


class PodsListInNamespaceTool(ToolHandler):
    name = "pods_list_in_namespace"
    description = "List all the Kubernetes pods in the specified namespace"
    parameters = {
        "namespace": {
            "type": "string",
            "description": "Namespace to list pods from",
        },
    }
    required = ["namespace"]

    def handle(self, params: dict) -> list:
        namespace = params.get("namespace", "")
        if namespace not in PODS:
            raise ValueError(f"namespaces \"{namespace}\" not found")
        return PODS[namespace]


class PodsLogTool(ToolHandler):
    name = "pods_log"
    description = "Get the logs of a Kubernetes pod"
    parameters = {
        "name": {"type": "string", "description": "Name of the pod"},
        "namespace": {"type": "string", "description": "Namespace of the pod"},
    }
    required = ["name"]

    def handle(self, params: dict) -> str:
        namespace = params.get("namespace") or "default"
        pod = params.get("name", "")
        if pod not in PODS.get(namespace, []):
            raise ValueError(f"pods \"{pod}\" not found")
        return f"[{namespace}/{pod}] started\n[{namespace}/{pod}] ready"


def build_server() -> ToolServer:
    server = ToolServer("mock-kubernetes-mcp-server")
    server.register(NamespacesListTool())
    server.register(PodsListInNamespaceTool())
    server.register(PodsLogTool())
    return server


if __name__ == "__main__":
    # stdout carries the protocol; logs go to stderr
    logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(levelname)s: %(message)s")

    # Same flags as kubernetes-mcp-server; they have no effect here
    parser = argparse.ArgumentParser(description="Mock Kubernetes MCP server (stdio).")
    parser.add_argument("--read-only", action="store_true")
    parser.add_argument("--kubeconfig", default=None)
    flags = parser.parse_args()
    if flags.read_only or flags.kubeconfig:
        logging.getLogger(__name__).info(
            f"Flags ignored by mock: read_only={flags.read_only} kubeconfig={flags.kubeconfig}"
        )

    build_server().run()
