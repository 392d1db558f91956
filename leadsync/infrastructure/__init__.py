"""Infrastructure adapters for REST and push transports"""
