# -----------------------------------------------------------------------------
# HIDALGO
# -----------------------------------------------------------------------------
# Packages a statically compiled Go program into a minimal container image:
# resolve -> validate hidalgo.cfg -> go build -> Dockerfile -> docker build.
# -----------------------------------------------------------------------------

__version__ = "1.0.0"
