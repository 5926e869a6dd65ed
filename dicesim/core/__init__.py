"""
Core system module for the dice simulator.

Contains the constants, logging, error handling, random sources and content
loading shared by every other package.
"""
