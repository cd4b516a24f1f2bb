"""podtail: tail the logs of every matching container in a Kubernetes cluster."""

__version__ = "0.1.0"
