"""
NFT Metadata Server Test Suite

Structure:
- unit/: Unit tests for individual components (schema, cache, resolvers, routes)
- integration/: End-to-end HTTP scenarios against a LocalJson directory
"""
