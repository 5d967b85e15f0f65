"""tracematrix CLI - command line front end for the traceability engine."""

__version__ = "0.1.0"
