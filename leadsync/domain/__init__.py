"""Domain layer: models and interfaces"""
