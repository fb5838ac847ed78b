"""
Read-only analytics over dose logs and body metrics

- statistics: Pearson correlation, averages, percentages
- adherence: daily/medication adherence, perfect-day streaks, insights
- correlation: medication vs metric correlation records
- goals: goal progress percentages
"""
