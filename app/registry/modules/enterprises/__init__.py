"""
Enterprise registry: tenant namespaces, each with one immutable owner.
"""
