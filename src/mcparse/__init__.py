"""mcparse – debounced parse cache and language server for McCode sources."""
try:
    from importlib.metadata import version, PackageNotFoundError
    try:
        __version__ = version('mcparse')
    except PackageNotFoundError:
        __version__ = '0.0.0.dev0'
except ImportError:
    __version__ = '0.0.0.dev0'
