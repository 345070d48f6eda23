"""abemadl — incremental downloader for free on-demand episodes of tracked programs."""
__version__ = "0.2.0"
