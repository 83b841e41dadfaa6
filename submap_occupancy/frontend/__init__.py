"""
Submap occupancy frontend.

ROS-facing collaborators that feed the backend:
- submap_query_client.py: SubmapQuery service client (tile fetch collaborator)
"""
