"""Builders for Tekton pipeline, run, task spec and trigger manifests."""