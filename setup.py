from setuptools import setup


setup(
    name="press-report",
    version="0.1.0",
    description="Merge media monitoring exports into formatted coverage report workbooks",
    packages=["press_report", "press_report.sources", "press_report.workbook"],
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl>=3.1",
        "streamlit",
        "requests",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "test": ["pytest"],
        "all": ["xlrd"],
    },
    entry_points={
        "console_scripts": [
            "press-report=press_report.cli:main",
        ]
    },
)
