from .network import canonical_name


def model_to_variable_id_dict(model):
    vmap = {}
    for var in model.variables:
        vmap[var.id] = var.name
    return vmap


def bits_to_variable_dict(artifact, model):
    """Map every bit name of a built network to ``(variable id, level)``."""
    result = {}
    for var in model.variables:
        prefix = canonical_name(var)
        for name in artifact.bits[var.id]:
            level = name[len(prefix) + 1:]
            result[name] = (var.id, -int(level[1:]) if level.startswith("m") else int(level))
    return result
