from setuptools import setup, find_namespace_packages

# Read requirements from requirements.txt
def read_requirements(filename="requirements.txt"):
    with open(filename) as f:
        requirements = []
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            requirements.append(line)
        return requirements

setup(
    name="precision-study-server",
    version="0.1.0",
    description="Data collection server for the precision text selection user study",
    packages=["precision_study_server"] + find_namespace_packages(include=["precision_study_server.*"]),
    python_requires=">=3.10",
    install_requires=read_requirements(),
    extras_require={
        "test": ["pytest", "httpx"],
    },
    package_data={"precision_study_server": ["static/*.html"]},
    include_package_data=True,
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
