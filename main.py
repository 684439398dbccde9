from capability import DefaultCapability, capability_from
from models import StageKind, StageSpec
from pipeline import AlreadyConsumedError, source
from utils import (
    get_performance_summary,
    is_even,
    make_sample_values,
    parse_int,
    run_pipeline,
    strip_label,
)

values = make_sample_values()


def expensive_parse(text):
    # Loud so laziness is visible
    print(f"  parsing {text!r} ...")
    return parse_int(strip_label(text))


print("\n--- Demo: laziness (no work until a terminal operation) ---")
numbers = source(values).map(expensive_parse).filter(is_even).limit(2)
print("Constructed pipeline. No output yet (nothing computed).")
print(f"First two even numbers: {numbers.to_list()}\n")

print("--- Demo: sorting and reductions ---")
print("Ascending:", source(values).map(strip_label).map(parse_int).sorted().to_list())
print("Descending:", source(values).map(strip_label).map(parse_int).sorted(reverse=True).to_list())
print("Sum:", source(values).map(strip_label).map(parse_int).sum())
print("Reduce on empty:", source([]).reduce(lambda a, b: a + b))
print("Flattened size:", source([values, values]).flat_map(source).count())
print()

print("--- Demo: one-shot consumption ---")
evens = source(values).map(strip_label).map(parse_int).filter(is_even)
print("Even count:", evens.count())
try:
    evens.find_first()
except AlreadyConsumedError as e:
    print(f"Second terminal call rejected: {e}\n")

print("--- Demo: default capability ---")


class Greeter(DefaultCapability):
    def try_me(self, message):
        return "you send this message: " + message


print(Greeter().try_me("my name is marcus"))
print(Greeter().try_me_again(""))
both = capability_from(
    lambda m: "You send this message to me: " + m,
    lambda m: "You send this message, again, to me: " + m,
)
print(both.try_me_again("my name is marcus"))
print()

print("--- Demo: declarative run ---")
report = run_pipeline(values, [
    StageSpec(type=StageKind.MAP, function="strip_label"),
    StageSpec(type=StageKind.MAP, function="parse_int"),
    StageSpec(type=StageKind.FILTER, function="is_odd"),
])
print(f"Odd numbers: {report.result} in {report.performance.processing_time_ms:.2f} ms")
print(f"Summary: {get_performance_summary()}")
