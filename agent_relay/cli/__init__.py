"""agent-relay - CLI module"""
