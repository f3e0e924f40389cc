"""
densenn package
~~~~~~~~~~~~~~~

Dense matrix container and feedforward sigmoid network trained with
backpropagation. Contains the matrix arithmetic, activation and cost
functions, dataset helpers, the network itself, and a REST API server.
"""

__version__ = "1.0.0"
