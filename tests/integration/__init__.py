"""
Integration tests for the Smart Parking engine

These tests run the engines, the service facade and the CLI against real
SQLite databases (in memory, or file-backed for the concurrency tests).
"""
