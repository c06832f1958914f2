"""Domain layer for the video moderation pipeline.

This layer contains the moderation rules (taxonomy, risk fusion, quota
policy) independent of infrastructure concerns like ffmpeg, inference
models, cloud clients or databases.
"""
