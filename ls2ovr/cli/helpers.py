from typing import Any, Callable, Optional, Union

import click

Param = Union[click.Option, click.Parameter]


def loader_option(*args: Any, **kwargs: Any) -> Callable:
    """An option that ends up as a keyword argument of the loader"""
    return options_dict_member("loader_options", *args, **kwargs)


def dumper_option(*args: Any, **kwargs: Any) -> Callable:
    """An option that ends up as a keyword argument of the dumper"""
    return options_dict_member("dumper_options", *args, **kwargs)


def options_dict_member(
    key: str, *args: Any, convert: Optional[Callable[[Any], Any]] = None, **kwargs: Any
) -> Callable:
    def callback(ctx: click.Context, param: Param, value: Any) -> None:
        # Options left to their click default must not override the default
        # values of the loader or dumper keyword arguments
        assert param.name is not None
        if ctx.get_parameter_source(param.name) in (
            click.core.ParameterSource.DEFAULT,
            click.core.ParameterSource.DEFAULT_MAP,
        ):
            return

        if convert is not None:
            value = convert(value)
        ctx.params.setdefault(key, {})[param.name] = value

    return click.option(*args, callback=callback, expose_value=False, **kwargs)
