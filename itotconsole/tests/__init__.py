"""
Tests Package

Provides test infrastructure for the ITOT Console.
"""
