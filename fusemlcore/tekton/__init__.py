"""Tekton manifests for workflows: variable resolution, generation, resource clients and backend."""