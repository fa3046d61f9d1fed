"""Setup script for the occurrence_lite package."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements, splitting test-only dependencies into the test extra
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
test_requirements = []

if requirements_file.exists():
    content = requirements_file.read_text().strip()
    lines = content.split("\n")

    for line in lines:
        line = line.strip()
        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        if "pytest" in line:
            test_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="occurrence-lite",
    version="0.1.0",
    description="RRULE parsing and windowed occurrence tables for ICS calendars",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["occurrence_lite", "occurrence_lite.*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
        "dev": test_requirements
        + [
            "mypy>=1.0.0",
            "types-python-dateutil",
            "types-PyYAML",
        ],
    },
    python_requires=">=3.11",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
    ],
    keywords="calendar ics icalendar rrule recurrence",
    entry_points={
        "console_scripts": [
            "occurrence-lite=occurrence_lite.__main__:main",
        ],
    },
    zip_safe=False,
)
