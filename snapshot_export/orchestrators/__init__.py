"""Batch orchestration.

- tenant_pipeline: Sequential fetch -> normalize -> build -> publish for one community
- batch: In-process thread-pool batch over every community
- export_pipeline: Durable Functions orchestrator with bounded fan-out
- triggers: HTTP trigger handlers that queue the orchestration
"""
