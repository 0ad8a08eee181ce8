"""
This package contains the stabilize-and-join pipeline.

The pipeline orchestrates a whole run: it validates the output name, discovers
the inputs, drives each one through the stabilization state machine in
filename order, joins the results, and guarantees cleanup of temp files.
"""
