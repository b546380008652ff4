"""Kanatype Utilities Package"""
