"""Outgoing email builders."""
