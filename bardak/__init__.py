"""Binary message protocol toolkit: definitions, dumps, codecs, headers and module interfaces."""

__version__ = "0.1.0"