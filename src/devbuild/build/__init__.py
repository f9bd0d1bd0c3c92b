"""Build engine: working copy, package materialization, zipapp artifacts"""
