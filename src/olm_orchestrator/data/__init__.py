"""Bundled Kubernetes manifests."""
