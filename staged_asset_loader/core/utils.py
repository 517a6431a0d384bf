import typing as t

T = t.TypeVar("T")
U = t.TypeVar("U")
V = t.TypeVar("V")

Numeric = t.Union[int, float]


def clamp(value: T, min_: U, max_: V) -> t.Union[T, U, V]:
	return min_ if value < min_ else (max_ if value > max_ else value)

def lerp(start: Numeric, stop: Numeric, ratio: Numeric) -> Numeric:
	return start + (stop - start) * ratio

def convert_bool_env_var(v: t.Optional[str]) -> bool:
	if v == "0":
		return False
	return bool(v)
