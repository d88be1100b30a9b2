"""Application Layer.

Orchestrates domain services with infrastructure adapters: batch coverage
runs over a network file and the command-line entry point.
"""
