"""Route handlers following Single Responsibility Principle

Each router module handles a single resource/concept:
- health: Health/monitoring endpoints
- database: Database lifecycle (initialize, reset)
- settings: Embedding configuration
- documents: Index/delete documents
- query: Semantic search
"""
