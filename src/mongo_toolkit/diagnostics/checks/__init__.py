"""Built-in diagnostic checks, one module per category.

Each module exposes an ``ISSUES`` tuple of
:class:`~mongo_toolkit.diagnostics.models.IssueDescriptor` records in
registration order.
"""
