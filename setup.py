from setuptools import find_packages, setup

package_name = "submap_occupancy"

setup(
    name=package_name,
    version="0.1.0",
    packages=find_packages(exclude=["test"]),
    data_files=[
        ("share/ament_index/resource_index/packages", ["resource/" + package_name]),
        ("share/" + package_name, ["package.xml"]),
        (
            "share/" + package_name + "/launch",
            [
                "launch/occupancy_grid.launch.py",
            ],
        ),
        (
            "share/" + package_name + "/config",
            [
                "config/occupancy_grid.yaml",
            ],
        ),
    ],
    install_requires=["setuptools", "numpy", "scipy", "jax", "pydantic>=2", "pyyaml", "rerun-sdk"],
    extras_require={"test": ["pytest"]},
    zip_safe=True,
    maintainer="Will Haber",
    maintainer_email="whab13@mit.edu",
    description="Assembles SLAM submap textures into a latched nav_msgs/OccupancyGrid (ROS 2 Jazzy)",
    license="Apache-2.0",
    tests_require=["pytest"],
    entry_points={
        "console_scripts": [
            "occupancy_grid_node = submap_occupancy.backend.occupancy_grid_node:main",
        ],
    },
)
