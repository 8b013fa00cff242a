"""Example usage of the StructFlow package.

This example demonstrates the core features of the StructFlow package including:
- Defining models with atomic elements, Apply and If
- Conditioning and soft constraints
- Chains and their nested problems
- Truncated ranges and the depth limit
"""

from structflow import (
    Apply, Chain, Constant, Flip, If, Poisson, Select,
    StructuredBP, Universe, probability,
)


def basic_model_example():
    """Demonstrate a small model and its marginals."""
    print("=" * 60)
    print("Basic Model Example")
    print("=" * 60)

    with Universe():
        rain = Flip(0.2)
        sprinkler = Flip(0.4)
        wet = rain | sprinkler

    print("\n1. Marginal of a derived element")
    print(f"   P(wet) = {probability(wet, True, 10):.4f} (expected 0.52)")

    print("\n2. Conditioning on an observation")
    wet.observe(True)
    print(f"   P(rain | wet) = {probability(rain, True, 10):.4f}")
    wet.unobserve()


def if_and_constraints_example():
    """Demonstrate If elements, conditions and constraints."""
    print("\n" + "=" * 60)
    print("If and Constraints Example")
    print("=" * 60)

    with Universe():
        coin = Flip(0.3)
        outcome = If(coin, Flip(0.8), Flip(0.1))
        die = Select([1 / 6] * 6, [1, 2, 3, 4, 5, 6])
        doubled = Apply(lambda x: 2 * x, die)

    outcome.observe(True)
    print(f"\n1. P(coin | outcome) = {probability(coin, True, 10):.4f}")

    die.add_constraint(lambda v: 2.0 if v % 2 == 0 else 1.0)
    algorithm = StructuredBP.create(10, doubled)
    algorithm.start()
    print("\n2. Distribution of 2 * die with even faces weighted twice:")
    for p, value in algorithm.distribution(doubled):
        print(f"   {value:2d}: {p:.4f}")
    print(f"   Mean: {algorithm.mean(doubled):.4f}")
    algorithm.kill()


def chain_example():
    """Demonstrate chains and nested problems."""
    print("\n" + "=" * 60)
    print("Chain Example")
    print("=" * 60)

    with Universe():
        season = Select([0.25, 0.75], ["winter", "summer"])
        temperature = Chain(
            season,
            lambda s: Select([0.7, 0.3], ["cold", "mild"]) if s == "winter"
            else Select([0.1, 0.9], ["mild", "hot"]),
        )

    algorithm = StructuredBP.create(10, temperature)
    algorithm.start()
    print("\nTemperature distribution:")
    for p, value in algorithm.distribution(temperature):
        print(f"   {value}: {p:.4f}")
    algorithm.kill()


def truncation_example():
    """Demonstrate irregular mass from truncation and the depth limit."""
    print("\n" + "=" * 60)
    print("Truncation Example")
    print("=" * 60)

    with Universe():
        arrivals = Poisson(3.0, cutoff=5)

        def geometric(n):
            return Chain(Flip(0.5), lambda stop: Constant(n) if stop else geometric(n + 1))

        trials = geometric(0)

    algorithm = StructuredBP.create(10, arrivals)
    algorithm.start()
    total = sum(p for p, _ in algorithm.distribution(arrivals))
    print(f"\n1. Poisson(3) truncated at 5, regular mass: {total:.4f}")
    algorithm.kill()

    algorithm = StructuredBP.create(10, trials, max_depth=4)
    algorithm.start()
    print("\n2. Geometric recursion expanded to depth 4:")
    for p, value in algorithm.distribution(trials):
        print(f"   {value}: {p:.4f}")
    algorithm.kill()


if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("StructFlow Package Examples")
    print("=" * 60)

    basic_model_example()
    if_and_constraints_example()
    chain_example()
    truncation_example()

    print("\n" + "=" * 60)
    print("Examples completed successfully!")
    print("=" * 60 + "\n")
