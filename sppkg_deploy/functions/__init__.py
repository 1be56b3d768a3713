"""
SharePoint calls and payload helpers used by the deployment pipeline
"""
