"""Domain records: workflows, codesets, applications, projects, runnables and extensions."""