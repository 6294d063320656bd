"""
This package contains the worked examples for the functions, loops and apply
teaching notes.

It includes the batch demo runner (`main.py`) and a `utils` subpackage holding
the example functions themselves, the column-wise iteration strategies, the
regression helper, data generation and plotting utilities.
"""
