"""
Knowledge base CLI module.

Provides command-line tools for:
- Ingesting text files into the embedding store
- Querying the store for relevant passages
- Asking grounded questions
- Inspecting store contents
"""
