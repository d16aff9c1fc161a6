"""
kdtutor - Knowledge Deconstruction Tutor

An interactive tutoring assistant on top of hosted LLM APIs.
Pick a learning mode (intuition, principle, academic, paper, literature...),
fill in your course context, and ask away.
"""

__version__ = "0.1.0"
