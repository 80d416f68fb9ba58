"""
What-If Scenario Analysis for comparing dispatch strategies and fleet sizes.
"""

import copy
import logging
from typing import Dict, List, Optional

import pandas as pd

from model.city_model import CityModel
from model.config import DEFAULT_SIMULATION_CONFIG

logger = logging.getLogger(__name__)


class ScenarioAnalyzer:
    """
    Analyzes different scenarios to predict outcomes.
    """
    
    def __init__(self, base_config: Optional[Dict] = None):
        """
        Initialize scenario analyzer.
        
        Args:
            base_config: Base simulation configuration (CityModel keyword arguments)
        """
        self.base_config = copy.deepcopy(base_config if base_config is not None
                                         else DEFAULT_SIMULATION_CONFIG)
        self.scenario_results = []
    
    def run_scenario(self, scenario_name: str, config_overrides: Dict,
                    steps: int = 100) -> Dict:
        """
        Run a what-if scenario simulation.
        
        Args:
            scenario_name: Name of scenario
            config_overrides: Configuration changes from base
            steps: Number of simulation steps to run
        
        Returns:
            Scenario results dictionary
        """
        # Create modified config
        scenario_config = copy.deepcopy(self.base_config)
        scenario_config.update(config_overrides)
        
        model = CityModel(**scenario_config)
        
        for _ in range(steps):
            model.step()
            if not model.running:
                break
        
        results = {
            'scenario_name': scenario_name,
            'config': scenario_config,
            'metrics': model.summary(),
        }
        logger.info("Scenario '%s' finished after %d steps", scenario_name, results['metrics']['steps'])
        
        self.scenario_results.append(results)
        
        return results
    
    def compare_scenarios(self, scenario_names: Optional[List[str]] = None) -> pd.DataFrame:
        """
        Compare multiple scenarios.
        
        Args:
            scenario_names: List of scenario names to compare (None = all)
        
        Returns:
            DataFrame with comparison results
        """
        if scenario_names:
            scenarios = [s for s in self.scenario_results if s['scenario_name'] in scenario_names]
        else:
            scenarios = self.scenario_results
        
        if not scenarios:
            return pd.DataFrame()
        
        comparison_data = []
        for scenario in scenarios:
            metrics = scenario['metrics']
            row = {
                'Scenario': scenario['scenario_name'],
                'Steps': metrics['steps'],
                'Completed': metrics['rides_completed'],
                'Cancelled': metrics['rides_cancelled'],
                'Gave Up': metrics['passengers_gave_up'],
                'Avg Wait Steps': metrics['avg_wait_steps'],
                'Avg Trip km': metrics['avg_trip_km'],
                'Utilization %': metrics['taxi_utilization'],
            }
            # Add config differences
            for key, value in scenario['config'].items():
                if key not in self.base_config or self.base_config[key] != value:
                    row[f'Config: {key}'] = value
            
            comparison_data.append(row)
        
        return pd.DataFrame(comparison_data)
    
    def analyze_strategy_impact(self, simulation_steps: int = 100) -> pd.DataFrame:
        """
        Compare FIFO dispatch against nearest-vehicle dispatch.
        
        Args:
            simulation_steps: Steps per scenario
        
        Returns:
            DataFrame with comparison
        """
        scenarios = [
            ("FIFO Dispatch", {'use_nearest': False}),
            ("Nearest Dispatch", {'use_nearest': True})
        ]
        
        for name, config in scenarios:
            self.run_scenario(name, config, steps=simulation_steps)
        
        return self.compare_scenarios([name for name, _ in scenarios])
    
    def analyze_fleet_size_impact(self, min_taxis: int = 5, max_taxis: int = 20,
                                  step_size: int = 5, simulation_steps: int = 100) -> pd.DataFrame:
        """
        Analyze impact of different fleet sizes.
        
        Args:
            min_taxis: Minimum number of taxis
            max_taxis: Maximum number of taxis
            step_size: Increment step
            simulation_steps: Steps per scenario
        
        Returns:
            DataFrame with fleet size analysis
        """
        results = []
        
        for num_taxis in range(min_taxis, max_taxis + 1, step_size):
            result = self.run_scenario(
                f"Fleet Size: {num_taxis}",
                {'num_taxis': num_taxis},
                steps=simulation_steps
            )
            results.append(result)
        
        return self.compare_scenarios([r['scenario_name'] for r in results])
    
    def get_recommendations(self) -> List[Dict]:
        """
        Generate recommendations based on scenario analysis.
        
        Returns:
            List of recommendation dictionaries
        """
        recommendations = []
        
        if not self.scenario_results:
            return recommendations
        
        comparison_df = self.compare_scenarios()
        
        if comparison_df.empty:
            return recommendations
        
        # Find best scenario for each metric
        best_wait = comparison_df.loc[comparison_df['Avg Wait Steps'].idxmin()]
        best_completed = comparison_df.loc[comparison_df['Completed'].idxmax()]
        fewest_lost = comparison_df.loc[comparison_df['Gave Up'].idxmin()]
        
        recommendations.append({
            'type': 'wait_time',
            'message': f"Best wait time: {best_wait['Scenario']} ({best_wait['Avg Wait Steps']:.2f} steps)",
            'scenario': best_wait['Scenario']
        })
        
        recommendations.append({
            'type': 'throughput',
            'message': f"Most rides completed: {best_completed['Scenario']} ({best_completed['Completed']})",
            'scenario': best_completed['Scenario']
        })
        
        recommendations.append({
            'type': 'lost_demand',
            'message': f"Fewest passengers lost: {fewest_lost['Scenario']} ({fewest_lost['Gave Up']})",
            'scenario': fewest_lost['Scenario']
        })
        
        return recommendations
