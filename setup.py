from setuptools import setup, find_packages

def parse_requirements(requirements):
    with open(requirements) as f:
        return [l.strip('\n') for l in f if l.strip('\n') and not l.startswith('#')]

requirements = parse_requirements("requirements.txt")
test_requirements = parse_requirements("requirements-test.txt")

setup(
    name='cms_backend',
    version='0.1.0',
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
        "redis": ["redis>=4.2"],
    },
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.9",
)
