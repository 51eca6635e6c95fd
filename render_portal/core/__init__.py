"""Core (pure) library layer.

Request contracts shared by the web app, the CLI and tests. Importing this
package has no filesystem or subprocess side effects.
"""
