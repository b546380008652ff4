"""Kanatype - kana typing game backend with replay-verified scores"""

__version__ = "1.0.0"
