"""Orchestration chains wrapping the file-operation engine."""

from workspace_apply.chains.apply_chain import ApplyChain

__all__ = ["ApplyChain"]
