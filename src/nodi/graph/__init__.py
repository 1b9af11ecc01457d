"""Document link graph built from ``[[reference]]`` tokens.

Documents are registered first and references resolved afterwards, so the
graph can contain links to documents scanned later in the same run. Nodes
and links live in the same SQLite DB as the document table.
"""
