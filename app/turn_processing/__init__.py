"""Chair selection and action validation.

Every in-game action goes through the same validator pipeline whether it
comes from a dedicated route or the generic action endpoint.
"""
