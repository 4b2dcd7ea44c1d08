import polyrel.config as cfg


def identity_token(model, separator: str = None) -> str:
    if separator is None:
        separator = cfg.get(cfg.IDENTITY_SEPARATOR)
    if model._is_new:
        # unsaved rows must never match a stored one
        return f'new{separator}{id(model)}'
    return separator.join(str(value) for value in model.primary_key())


def index_by_token(models, separator: str = None) -> dict:
    return {identity_token(model, separator): model for model in models}


def _unique_tokens(models, separator):
    tokens = []
    for model in models:
        token = identity_token(model, separator)
        if token not in tokens:
            tokens.append(token)
    return tokens


def compute_pk_diff(old_models, new_models, separator: str = None) -> tuple[list[str], list[str]]:
    old_tokens = _unique_tokens(old_models or [], separator)
    new_tokens = _unique_tokens(new_models or [], separator)
    identical = set(old_tokens) & set(new_tokens)
    added = [token for token in new_tokens if token not in identical]
    removed = [token for token in old_tokens if token not in identical]
    return added, removed
