"""Submap occupancy: assembles SLAM submap textures into a global occupancy grid."""
