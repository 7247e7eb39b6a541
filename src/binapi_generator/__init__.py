"""Generator of Python bindings for VPP binary API modules, and the runtime the bindings use."""
