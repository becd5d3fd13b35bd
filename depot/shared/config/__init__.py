"""
Shared Config Module
====================

YAML configuration files (settings/defaults.yaml, user.yaml, project.yaml)
read by depot.shared.core.configuration.ConfigManager.
"""
