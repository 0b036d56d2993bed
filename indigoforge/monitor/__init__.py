"""Terminal rendering for build plans and build statuses.

Modules
-------
renderer
    ``BuildRenderer`` turns compiled steps and ``BuildStatus`` records into
    Rich renderables for the CLI.
"""
