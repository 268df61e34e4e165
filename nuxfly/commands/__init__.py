"""
nuxfly CLI Commands

One module per verb; each exposes a click command and the command class
behind it.
"""
