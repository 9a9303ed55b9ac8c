"""
API route modules.
"""
from app.api.routes import storage, video, generation, image, credits, billing, webhooks

__all__ = ["storage", "video", "generation", "image", "credits", "billing", "webhooks"]
