"""Tests for core optimizer.

Tests the Optimizer wrapper and configuration classes.
"""

import numpy as np
import pyceres
import pytest

from skellymesh.core.callbacks import EnergyCallback
from skellymesh.core.config import (
    BundleAdjustmentType,
    OptimizationConfig,
    TrackingWeightConfig,
)
from skellymesh.core.cost_primatives import DeformCost, TVCost
from skellymesh.core.optimizer import Optimizer
from skellymesh.core.result import OptimizationResult


class TestOptimizationConfig:
    """Test optimization configuration."""

    def test_create_default_config(self) -> None:
        """Should create config with defaults."""
        config = OptimizationConfig()

        assert config.max_iterations == 50
        assert config.use_robust_loss is False
        assert config.robust_loss_type == "huber"

    def test_to_solver_options(self) -> None:
        """Should convert to pyceres SolverOptions."""
        config = OptimizationConfig(max_iterations=100, linear_solver="dense_qr", num_threads=2)
        options = config.to_solver_options()

        assert isinstance(options, pyceres.SolverOptions)
        assert options.max_num_iterations == 100
        assert options.num_threads == 2
        assert options.linear_solver_type == pyceres.LinearSolverType.DENSE_QR

    def test_unknown_linear_solver_raises(self) -> None:
        """Should reject unknown solver names."""
        config = OptimizationConfig(linear_solver="cholmod")  # type: ignore[arg-type]

        with pytest.raises(ValueError, match="Unknown linear solver"):
            config.to_solver_options()

    def test_get_loss_function(self) -> None:
        """Should return appropriate loss function."""
        config = OptimizationConfig(
            use_robust_loss=True,
            robust_loss_type="huber",
            robust_loss_param=2.0
        )

        loss = config.get_loss_function()

        assert isinstance(loss, pyceres.HuberLoss)

    def test_no_loss_when_disabled(self) -> None:
        """Disabled robust loss gives plain least squares."""
        assert OptimizationConfig().get_loss_function() is None

    def test_dogleg_strategy(self) -> None:
        config = OptimizationConfig(trust_region_strategy="dogleg", num_threads=1)

        options = config.to_solver_options()

        assert options.trust_region_strategy_type == pyceres.TrustRegionStrategyType.DOGLEG

    def test_auto_threads_leaves_one_core(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unset thread count uses all cores but one, never less than one."""
        monkeypatch.setattr("os.cpu_count", lambda: 8)
        assert OptimizationConfig().resolved_num_threads == 7

        monkeypatch.setattr("os.cpu_count", lambda: None)
        assert OptimizationConfig().resolved_num_threads == 1

    @pytest.mark.parametrize("loss_type,loss_class", [
        ("cauchy", pyceres.CauchyLoss),
        ("soft_l1", pyceres.SoftLOneLoss),
    ])
    def test_other_loss_functions(self, loss_type: str, loss_class: type) -> None:
        config = OptimizationConfig(use_robust_loss=True, robust_loss_type=loss_type)  # type: ignore[arg-type]

        assert isinstance(config.get_loss_function(), loss_class)

    def test_unknown_loss_type_raises(self) -> None:
        config = OptimizationConfig(use_robust_loss=True, robust_loss_type="tukey")  # type: ignore[arg-type]

        with pytest.raises(ValueError, match="Unknown robust loss type: tukey"):
            config.get_loss_function()


class TestTrackingWeightConfig:
    """Test energy term weights."""

    def test_defaults(self) -> None:
        """Only data and TV terms are on by default."""
        weights = TrackingWeightConfig()

        assert weights.lambda_data == 1.0
        assert weights.lambda_tv == 1.0
        assert weights.lambda_arap == 0.0
        assert weights.lambda_temporal_rot == 0.0

    def test_scale_all(self) -> None:
        """Should scale every weight."""
        weights = TrackingWeightConfig(lambda_data=2.0, lambda_tv=0.5, lambda_deform=1.0)

        weights.scale_all(factor=2.0)

        assert weights.lambda_data == 4.0
        assert weights.lambda_tv == 1.0
        assert weights.lambda_deform == 2.0
        assert weights.lambda_arap == 0.0


class TestBundleAdjustmentType:
    """Test which blocks each solve type frees."""

    @pytest.mark.parametrize("ba_type,motion,structure", [
        (BundleAdjustmentType.MOTION, True, False),
        (BundleAdjustmentType.STRUCTURE, False, True),
        (BundleAdjustmentType.MOTION_STRUCTURE, True, True),
    ])
    def test_flags(self, ba_type: BundleAdjustmentType, motion: bool, structure: bool) -> None:
        assert ba_type.optimizes_motion is motion
        assert ba_type.optimizes_structure is structure


class TestOptimizer:
    """Test Optimizer wrapper."""

    @pytest.fixture
    def config(self) -> OptimizationConfig:
        return OptimizationConfig(max_iterations=50, linear_solver="dense_qr", num_threads=1)

    def test_create_optimizer(self, config: OptimizationConfig) -> None:
        """Should create optimizer instance."""
        optimizer = Optimizer(config=config)

        assert optimizer.config == config
        assert optimizer.num_parameters() == 0

    def test_add_parameter_block(self, config: OptimizationConfig) -> None:
        """Should add parameter block."""
        optimizer = Optimizer(config=config)

        params = np.array([1.0, 2.0, 3.0])
        optimizer.add_parameter_block(name="vertex_0", parameters=params)

        assert optimizer.num_parameters() == 3
        assert optimizer.get_parameter(name="vertex_0") is params

    def test_duplicate_name_raises(self, config: OptimizationConfig) -> None:
        """Should refuse to register a name twice."""
        optimizer = Optimizer(config=config)
        optimizer.add_parameter_block(name="rotation", parameters=np.zeros(3))

        with pytest.raises(ValueError, match="already added"):
            optimizer.add_parameter_block(name="rotation", parameters=np.zeros(3))

    def test_non_float64_raises(self, config: OptimizationConfig) -> None:
        """Solver writes in place, so blocks must be float64."""
        optimizer = Optimizer(config=config)

        with pytest.raises(ValueError, match="float64"):
            optimizer.add_parameter_block(name="bad", parameters=np.zeros(3, dtype=np.float32))

    def test_unknown_parameter_raises(self, config: OptimizationConfig) -> None:
        """Should raise KeyError for unknown names."""
        optimizer = Optimizer(config=config)

        with pytest.raises(KeyError):
            optimizer.get_parameter(name="missing")

    def test_simple_optimization(self, config: OptimizationConfig) -> None:
        """Deform anchor should pull a vertex back to its reference."""
        optimizer = Optimizer(config=config)

        reference = np.array([1.0, 2.0, 3.0])
        vertex = np.array([1.5, 1.0, 3.2])
        optimizer.add_parameter_block(name="vertex_0", parameters=vertex)
        optimizer.add_residual_block(
            cost=DeformCost(reference_vertex=reference, weight=1.0),
            parameters=[vertex]
        )

        result = optimizer.solve()

        assert isinstance(result, OptimizationResult)
        assert result.success
        assert result.final_cost <= result.initial_cost
        assert np.allclose(vertex, reference, atol=1e-5)
        assert result.energy == []

    def test_constant_block_is_not_moved(self, config: OptimizationConfig) -> None:
        """Constant blocks stay put while the others absorb the residual."""
        optimizer = Optimizer(config=config)

        reference_vertex = np.array([0.0, 0.0, 0.0])
        reference_neighbor = np.array([1.0, 0.0, 0.0])
        vertex = np.array([0.0, 0.0, 0.0])
        neighbor = np.array([3.0, 0.0, 0.0])
        optimizer.add_parameter_block(name="vertex_0", parameters=vertex)
        optimizer.add_parameter_block(name="vertex_1", parameters=neighbor)
        optimizer.add_residual_block(
            cost=TVCost(
                reference_vertex=reference_vertex,
                reference_neighbor=reference_neighbor,
                weight=1.0
            ),
            parameters=[vertex, neighbor]
        )
        optimizer.set_parameter_constant(parameters=neighbor)

        optimizer.solve()

        assert np.allclose(neighbor, [3.0, 0.0, 0.0])
        assert np.allclose(vertex, [2.0, 0.0, 0.0], atol=1e-5)

    def test_constant_block_can_be_freed(self, config: OptimizationConfig) -> None:
        """A block set constant and then variable is optimized again."""
        optimizer = Optimizer(config=config)

        vertex = np.array([1.0, 1.0, 1.0])
        optimizer.add_parameter_block(name="vertex_0", parameters=vertex)
        optimizer.add_residual_block(
            cost=DeformCost(reference_vertex=np.zeros(3), weight=1.0),
            parameters=[vertex]
        )
        optimizer.set_parameter_constant(parameters=vertex)
        optimizer.set_parameter_variable(parameters=vertex)

        optimizer.solve()

        assert np.allclose(vertex, 0.0, atol=1e-5)

    def test_solve_with_callback_records_energy(self, config: OptimizationConfig) -> None:
        """Energy callback should see every iteration and land in the result."""
        optimizer = Optimizer(config=config)

        vertex = np.array([4.0, -3.0, 0.5])
        optimizer.add_parameter_block(name="vertex_0", parameters=vertex)
        optimizer.add_residual_block(
            cost=DeformCost(reference_vertex=np.zeros(3), weight=2.0),
            parameters=[vertex]
        )
        callback = EnergyCallback()

        result = optimizer.solve_with_callback(callback=callback)

        assert len(callback) >= 1
        assert result.energy == callback.energy_record
        assert callback.energy_record[0] == pytest.approx(result.initial_cost)
        assert callback.energy_record[-1] == pytest.approx(result.final_cost, abs=1e-9)


class TestOptimizationResult:
    """Test optimization result."""

    def test_create_result(self) -> None:
        """Should create result."""
        result = OptimizationResult(
            success=True,
            num_iterations=100,
            initial_cost=10.0,
            final_cost=1.0,
            solve_time_seconds=5.0
        )

        assert result.success
        assert result.num_iterations == 100
        assert result.cost_reduction == pytest.approx(0.9)
        assert "OPTIMIZATION RESULT" in result.summary()

    def test_zero_initial_cost(self) -> None:
        """Reduction of an already-solved problem is zero."""
        result = OptimizationResult(
            success=True,
            num_iterations=0,
            initial_cost=0.0,
            final_cost=0.0,
            solve_time_seconds=0.0
        )

        assert result.cost_reduction == 0.0

    def test_warns_when_not_converged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Non-converged results log a warning."""
        OptimizationResult(
            success=False,
            num_iterations=50,
            initial_cost=10.0,
            final_cost=9.0,
            solve_time_seconds=1.0
        )

        assert "did not converge" in caplog.text

    def test_summary_reports_energy(self) -> None:
        """Recorded iterations show up in the summary."""
        result = OptimizationResult(
            success=True,
            num_iterations=2,
            initial_cost=4.0,
            final_cost=1.0,
            solve_time_seconds=0.1,
            energy=[4.0, 2.0, 1.0]
        )

        summary = result.summary()

        assert "Reduction:    75.0%" in summary
        assert "Energy:       3 recorded iterations" in summary
