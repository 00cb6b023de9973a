"""Core Application Layer: Orchestrates use cases.

Connects the domain layer with the infrastructure layer through interfaces.
Contains the command handler.
"""
