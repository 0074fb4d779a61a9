"""
Console demos for chat agents: model client setup, plugin functions,
single-agent chat loops and a writer/critic turn-taking workflow.
"""

__version__ = "0.1.0"
