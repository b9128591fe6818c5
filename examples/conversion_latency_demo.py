"""Conversion-latency demo on synthetic subscription and order events.

This example walks through the full analysis:
1. Generate synthetic start (subscription) and conversion (order) events
2. Run the latency analysis with weekly and monthly cohorts
3. Print summary statistics, the day-range distribution and cohorts
4. Convert the results to pandas DataFrames
"""

import logging
from datetime import date

from conversion_latency import AnalysisConfig, analyze_conversion_latency
from conversion_latency.pandas import (
    cohorts_to_dataframe,
    conversion_records_to_dataframe,
    statistics_to_dataframe,
)
from conversion_latency.synthetic import generate_conversion_events


def main():
    """Demonstrate the conversion-latency pipeline end to end."""
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

    print("=" * 80)
    print("Conversion Latency Demo with Synthetic Subscription Data")
    print("=" * 80)

    # Step 1: Generate synthetic data
    print("\n📊 Step 1: Generating synthetic events...")
    starts, conversions = generate_conversion_events(
        1000,
        date(2024, 1, 1),
        date(2024, 6, 30),
        conversion_probability=0.35,
        mean_latency_days=21.0,
        seed=42,
    )
    print(f"✓ Generated {len(starts):,} start events and {len(conversions):,} conversions")

    # Step 2: Run analysis
    print("\n🔧 Step 2: Running latency analysis (weekly cohorts)...")
    config = AnalysisConfig(
        start_event_name="Subscribed to List",
        conversion_event_name="Placed Order",
        include_records=True,
    )
    result = analyze_conversion_latency(starts, conversions, config=config)

    # Step 3: Summary
    stats = result.statistics
    print("\n📈 Step 3: Summary statistics")
    print(f"  Entities:        {stats.total_entities:,}")
    print(f"  Converted:       {stats.converted_entities:,}")
    print(f"  Conversion rate: {stats.conversion_rate:.1%}")
    print(f"  Mean days:       {stats.mean_days:.1f}")
    print(f"  Median days:     {stats.median_days}")
    print(f"  Std dev days:    {stats.std_dev_days:.1f}")
    for name, value in stats.percentiles.as_dict().items():
        print(f"  {name}:             {value}")

    print("\n  Day-range distribution:")
    for label, count in result.distribution.items():
        share = count / stats.total_entities if stats.total_entities else 0
        print(f"    {label:>6}: {count:5d} ({share:.1%})")

    print("\n  First weekly cohorts:")
    for cohort in result.cohorts[:5]:
        print(
            f"    {cohort.cohort_label}: {cohort.total_entities} entities, "
            f"{cohort.conversion_rate:.1%} converted, median {cohort.median_days}d"
        )

    # Step 4: DataFrames
    print("\n🐼 Step 4: Monthly cohorts as DataFrames...")
    monthly = analyze_conversion_latency(starts, conversions, "month")
    print(statistics_to_dataframe(monthly.statistics).to_string(index=False))
    print()
    print(
        cohorts_to_dataframe(monthly.cohorts)[
            ["cohort_label", "total_entities", "conversion_rate", "median_days"]
        ].to_string(index=False)
    )
    records_df = conversion_records_to_dataframe(result.records)
    print(f"\n✓ Records frame: {len(records_df):,} rows")

    print("\n" + "=" * 80)
    print("✅ Demo complete")
    print("=" * 80)


if __name__ == "__main__":
    main()
