from wsmc.smc.swarm.population import ParticlePopulation
