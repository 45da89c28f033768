"""Clinical Agents.

Coordinator-led multi-agent clinical documentation with semantic acronym
standardization and clinical guideline retrieval.
"""

__version__ = "1.0.0"
