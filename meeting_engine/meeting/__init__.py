"""
Meeting orchestration: provider capabilities, the combination registry,
the strategy factory and the orchestration service.
"""
