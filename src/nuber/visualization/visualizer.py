import threading
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.animation import FuncAnimation

from nuber.simulation.metrics import durations_by_region
from nuber.simulation.simulation import NuberSimulation, SimulationReport


class DispatchVisualization:
    def __init__(self, simulation: NuberSimulation, update_interval: int = 50):
        self.sim = simulation
        self.update_interval = update_interval
        self.report: Optional[SimulationReport] = None
        self._runner: Optional[threading.Thread] = None

        # Timeline on the left, trip durations on the right
        self.fig = plt.figure(figsize=(16, 6))
        self.timeline_ax = self.fig.add_subplot(121)
        self.trips_ax = self.fig.add_subplot(122)
        self.fig.set_facecolor('white')

        self.setup_timeline_plot()
        self.setup_trips_plot()
        self.anim = None

    def setup_timeline_plot(self):
        self.timeline_ax.set_title('Dispatch Load')
        self.timeline_ax.set_xlabel('Time (s)')
        self.timeline_ax.set_ylabel('Count')

        self.awaiting_line, = self.timeline_ax.plot([], [], 'k-', label='Bookings awaiting result')
        self.pending_line, = self.timeline_ax.plot([], [], 'r-', label='Bookings without driver')
        self.idle_line, = self.timeline_ax.plot([], [], 'b-', label='Idle drivers')
        self.active_line, = self.timeline_ax.plot([], [], 'g-', label='Active jobs')

        self.timeline_ax.legend(loc='upper right')
        self.timeline_ax.grid(True)
        self.timeline_ax.set_xlim(0, 1)
        self.timeline_ax.set_ylim(0, max(1, self.sim.config.num_drivers))

    def setup_trips_plot(self):
        self.trips_ax.set_title('Trip Durations')
        self.trips_ax.set_xlabel('Duration (ms)')
        self.trips_ax.set_ylabel('Bookings')

    def update(self, frame):
        """Redraw the timeline from the samples collected so far"""
        timeline = self.sim.timeline()
        times = [s.time_s for s in timeline]
        awaiting = [s.awaiting for s in timeline]
        pending = [s.pending for s in timeline]
        idle = [s.idle_drivers for s in timeline]
        active = [sum(s.active_jobs.values()) for s in timeline]

        self.awaiting_line.set_data(times, awaiting)
        self.pending_line.set_data(times, pending)
        self.idle_line.set_data(times, idle)
        self.active_line.set_data(times, active)

        if times:
            self.timeline_ax.set_xlim(0, max(1.0, times[-1]))
            max_count = max(awaiting + pending + idle + active + [1])
            self.timeline_ax.set_ylim(0, max_count * 1.1)

        return (self.awaiting_line, self.pending_line, self.idle_line, self.active_line)

    def plot_trip_durations(self, report: SimulationReport):
        self.trips_ax.clear()
        self.setup_trips_plot()
        by_region = durations_by_region(report.results_by_region)
        series = [durations for durations in by_region.values() if durations.size]
        labels = [region for region, durations in by_region.items() if durations.size]
        if series:
            bins = np.linspace(0, max(float(d.max()) for d in series) + 1, 20)
            self.trips_ax.hist(series, bins=bins, stacked=True, label=labels)
            self.trips_ax.legend()

    def _run_simulation(self):
        self.report = self.sim.run()

    def start(self):
        """Run the simulation in the background so the plot can follow it"""
        self._runner = threading.Thread(target=self._run_simulation, name="simulation", daemon=True)
        self._runner.start()
        self.anim = FuncAnimation(
            self.fig, self.update, interval=self.update_interval,
            frames=None, blit=False, cache_frame_data=False
        )

    def finish(self) -> SimulationReport:
        """Wait for the run to end and draw the final figure"""
        self._runner.join()
        if self.anim is not None:
            self.anim.event_source.stop()
        self.update(None)
        self.plot_trip_durations(self.report)
        return self.report

    def show(self) -> SimulationReport:
        self.start()
        plt.show()
        return self.finish()

    def save(self, path: str):
        self.fig.savefig(path, bbox_inches='tight')
