"""Checker adapters for common dependencies."""

from .network import DnsChecker, HttpChecker, TcpChecker, TlsChecker
from .sql import SQLiteChecker

__all__ = ["DnsChecker", "HttpChecker", "SQLiteChecker", "TcpChecker", "TlsChecker"]
