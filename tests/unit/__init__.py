"""
Unit tests for the Smart Parking domain, configuration and repositories
"""
