"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (the Asana REST API, config
files, terminal output) by implementing the interfaces defined in the domain
layer. Also holds the resilience and diagnostics machinery of the request
pipeline.
"""
