"""Kanatype Services Package"""
