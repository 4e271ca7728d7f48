"""CRM API discovery: characterize a CRM's GraphQL and REST surfaces."""

__version__ = "0.1.0"
