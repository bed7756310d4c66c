"""Consignment offer bot: fans orders out to sellers on Discord and resolves the confirmation race."""
