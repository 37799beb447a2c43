"""
flutterbuild - Flutter build, artifact export and dependency cache step.
"""
