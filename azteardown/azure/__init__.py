"""Azure Resource Manager access: credentials, REST client and resource service."""
