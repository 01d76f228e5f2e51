"""
Bastion - Core Package
======================

Configuration, logging, errors, storage and the health endpoint.
"""
